"""Nightly resolution of athletes' most recent game statistics."""

__version__ = "0.1.0"
