"""Booking pricing engine: tiered price resolution, surcharges and edit tracking."""

__version__ = "0.1.0"
