"""Course entitlement and consumption tracking core."""

__version__ = "0.1.0"
