"""HTTP endpoints for geolocator."""

from .locate_api import LocateAPI, start_server

__all__ = ["LocateAPI", "start_server"]
