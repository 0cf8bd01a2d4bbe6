"""Roster sync: schedule ingestion, identity resolution and change notification."""

__version__ = "0.1.0"
