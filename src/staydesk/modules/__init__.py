"""Booking core modules."""
