"""Utility helpers shared by the domain modules."""

from academy_core.utils.dates import add_months, ensure_utc_aware, utc_now


__all__ = ["add_months", "ensure_utc_aware", "utc_now"]
