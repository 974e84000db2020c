"""Tribe vault provisioning and funding."""

__version__ = "0.1.0"
