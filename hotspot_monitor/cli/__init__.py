"""
Command Line Interface Package for Hotspot Monitor

- args.py: Argument parsing and validation
- formatters.py: JSON output and stderr summaries
- logging_setup.py: Logging configuration
- main.py: Main orchestration and entry point

License: MIT
"""

from .main import main

__all__ = ["main"]
