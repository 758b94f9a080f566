"""Conditional escrow engine: milestone release with arbitrated disputes."""

__version__ = "0.1.0"
