"""Hotpot heating and hot water controller."""

__version__ = "0.1.0"
