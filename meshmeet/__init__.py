"""Signaling relay and peer link lifecycle for multi-party mesh video calls."""

__version__ = "0.1.0"
