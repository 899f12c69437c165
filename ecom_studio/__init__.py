"""Ecom Studio - product images to AI-generated videos."""

__version__ = "1.0.0"
