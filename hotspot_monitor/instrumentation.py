"""
Performance Instrumentation for Hotspot Monitor
===============================================

This module records timing metrics for every raw socket request and login
attempt so slow or flaky routers can be diagnosed from the CLI.

"""

import logging
import time
from typing import Any, Optional

from .models import TimingMetrics

logger = logging.getLogger("hotspot-monitor")


class PerformanceInstrumentation:
    """
    Performance instrumentation for the hotspot client.

    Tracks timing for:
    - Individual socket requests, keyed by command
    - Login attempts
    - Latency probes
    """

    def __init__(self) -> None:
        self.timing_metrics: list[TimingMetrics] = []
        self.session_start_time = time.time()
        self.request_metrics: dict[str, list[float]] = {}

    def start_timer(self, operation: str) -> float:
        """Start timing an operation."""
        return time.time()

    def record_timing(
        self,
        operation: str,
        start_time: float,
        success: bool = True,
        error_type: Optional[str] = None,
        response_size: int = 0,
    ) -> TimingMetrics:
        """Record timing metrics for an operation."""
        end_time = time.time()
        duration = end_time - start_time

        metric = TimingMetrics(
            operation=operation,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            success=success,
            error_type=error_type,
            response_size=response_size,
        )

        self.timing_metrics.append(metric)
        self.request_metrics.setdefault(operation, []).append(duration)

        logger.debug(f"📊 {operation}: {duration * 1000:.1f}ms (success: {success})")
        return metric

    def get_performance_summary(self) -> dict[str, Any]:
        """Get a summary of everything recorded so far."""
        if not self.timing_metrics:
            return {"error": "No timing metrics recorded"}

        total_session_time = time.time() - self.session_start_time

        operation_stats = {}
        for operation, durations in self.request_metrics.items():
            attempts = [m for m in self.timing_metrics if m.operation == operation]
            operation_stats[operation] = {
                "count": len(durations),
                "total_time": sum(durations),
                "avg_time": sum(durations) / len(durations),
                "min_time": min(durations),
                "max_time": max(durations),
                "success_rate": len([m for m in attempts if m.success]) / len(attempts),
            }

        successful = sorted(m.duration for m in self.timing_metrics if m.success)
        if successful:
            n = len(successful)
            percentiles = {
                "p50": successful[n // 2],
                "p90": successful[int(n * 0.9)],
                "p95": successful[int(n * 0.95)],
                "p99": successful[int(n * 0.99)],
            }
        else:
            percentiles = {"p50": 0, "p90": 0, "p95": 0, "p99": 0}

        return {
            "session_metrics": {
                "total_session_time": total_session_time,
                "total_operations": len(self.timing_metrics),
                "successful_operations": len([m for m in self.timing_metrics if m.success]),
                "failed_operations": len([m for m in self.timing_metrics if not m.success]),
                "bytes_received": sum(m.response_size for m in self.timing_metrics),
            },
            "operation_breakdown": operation_stats,
            "response_time_percentiles": percentiles,
            "performance_insights": self._generate_performance_insights(operation_stats),
        }

    def _generate_performance_insights(self, operation_stats: dict[str, Any]) -> list[str]:
        """Generate human-readable hints from the collected metrics."""
        insights = []

        login_stats = operation_stats.get("login")
        if login_stats:
            if login_stats["avg_time"] > 2.0:
                insights.append(f"Login taking {login_stats['avg_time']:.2f}s - router may be overloaded")
            if login_stats["count"] > 1:
                insights.append(f"{login_stats['count']} logins recorded - session is expiring between polls")

        request_ops = [stats for op, stats in operation_stats.items() if op.startswith("request")]
        if request_ops:
            slowest = max(stats["max_time"] for stats in request_ops)
            if slowest > 3.0:
                insights.append(f"Slowest request took {slowest:.2f}s - close to the socket timeout")

        total_ops = len(self.timing_metrics)
        failed_ops = len([m for m in self.timing_metrics if not m.success])
        error_rate = failed_ops / total_ops
        if error_rate > 0.1:
            insights.append(f"High error rate: {error_rate * 100:.1f}% - check the Wi-Fi link to the hotspot")
        elif error_rate == 0:
            insights.append("Perfect reliability: 0% error rate")

        return insights


__all__ = ["PerformanceInstrumentation"]
