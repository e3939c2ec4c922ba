"""HTTP host for the edge worker."""

from album_edge.server.app import EdgeServer

__all__ = ["EdgeServer"]
