"""Edge caching and request-routing engine for the album showcase."""

__version__ = "8.0.2"
