"""Duri Tracking: maritime shipment tracking backend."""

__version__ = "0.1.0"
