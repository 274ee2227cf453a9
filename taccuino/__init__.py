"""Taccuino - a full-screen terminal note manager."""

__version__ = "1.0.0"
