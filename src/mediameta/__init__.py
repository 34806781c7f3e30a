"""Photo and video metadata normalization with offline reverse geocoding."""

__version__ = "0.1.0"
