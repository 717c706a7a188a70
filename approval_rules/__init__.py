"""Approval rule lifecycle management and historical pattern analysis."""

__version__ = "0.1.0"
