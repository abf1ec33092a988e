"""Class booking, waitlist and entitlement engine for the studio."""

__version__ = "1.0.0"
