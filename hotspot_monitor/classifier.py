"""
Device Classification for Hotspot Monitor
=========================================

Guesses a coarse device category for display. Hostname keywords are checked
in order (Apple mobile, Apple computer, Android, other computers) and the
first match wins; without a match a short table of MAC vendor prefixes is
consulted. Anything still unknown is shown as a laptop.

"""

from typing import Optional

from .models import DeviceClassification

APPLE_MOBILE = DeviceClassification("iPhone", "Apple")
APPLE_COMPUTER = DeviceClassification("Laptop", "Apple")
ANDROID = DeviceClassification("Android", "Android")
COMPUTER = DeviceClassification("Laptop", "Computer")
UNKNOWN = DeviceClassification("Laptop", "Unknown")

HOSTNAME_RULES = (
    (("iphone", "ipad"), APPLE_MOBILE),
    (("macbook", "imac", "mac"), APPLE_COMPUTER),
    (
        ("android", "samsung", "galaxy", "pixel", "xiaomi", "huawei", "oppo", "vivo", "oneplus", "realme"),
        ANDROID,
    ),
    (("windows", "desktop", "laptop", "pc", "nitro", "asus", "dell", "hp", "lenovo", "acer"), COMPUTER),
)

# First three octets, upper case.
MAC_VENDORS = {
    "00:1A:2B": "Apple",
    "00:50:56": "VMware",
    "00:0C:29": "VMware",
    "08:00:27": "VirtualBox",
    "DC:A6:32": "Raspberry Pi",
    "B8:27:EB": "Raspberry Pi",
    "00:1B:44": "Samsung",
    "AC:DE:48": "Samsung",
}

VENDOR_CLASSIFICATIONS = {
    "Apple": APPLE_MOBILE,
    "Samsung": ANDROID,
}


def mac_vendor(mac: str) -> Optional[str]:
    """Vendor name for a known MAC prefix."""
    return MAC_VENDORS.get(mac[:8].upper())


def classify_device(hostname: str, mac: str) -> DeviceClassification:
    """
    Classify a device from its hostname, then its MAC vendor.

    Args:
        hostname: Resolved hostname (may be the "Device N" fallback)
        mac: Canonical MAC address

    Returns:
        DeviceClassification with a device type and brand
    """
    lowered = (hostname or "").lower()
    for keywords, classification in HOSTNAME_RULES:
        if any(keyword in lowered for keyword in keywords):
            return classification

    return VENDOR_CLASSIFICATIONS.get(mac_vendor(mac or ""), UNKNOWN)


__all__ = ["MAC_VENDORS", "classify_device", "mac_vendor"]
