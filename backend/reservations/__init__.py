"""Transactional reservation and aggregate core for a marketplace and a clinic."""

__version__ = "0.1.0"
