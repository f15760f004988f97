"""Atrium - resilient chat orchestration for a real estate analytics assistant."""

__version__ = "0.1.0"
