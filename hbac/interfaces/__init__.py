"""Interfaces for pluggable HBAC backends."""

from hbac.interfaces.database import DatabaseConnector, UserAccessMap

__all__ = ["DatabaseConnector", "UserAccessMap"]
