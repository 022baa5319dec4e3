"""Most Likely Cell geolocation of short texts from token/cell statistics."""

__version__ = "1.0.0"
