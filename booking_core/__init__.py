"""Slot computation and conflict-free reservation engine for provider bookings."""

__version__ = "0.1.0"
