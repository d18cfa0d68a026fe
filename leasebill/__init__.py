"""Recurring unit billing for landlord/tenant property management."""

__version__ = "0.1.0"
