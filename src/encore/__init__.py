"""Encore - playback session controller for a catalog-backed music client."""

__version__ = "0.1.0"
