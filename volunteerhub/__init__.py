"""Coordination core for a volunteer and charity platform."""

__version__ = "0.1.0"
