"""User-requested offline packages and deferred retry."""

from album_edge.offline.connectivity import ConnectivityMonitor
from album_edge.offline.lists import OfflineListStore
from album_edge.offline.package_manager import DownloadReport, OfflinePackageManager

__all__ = ["ConnectivityMonitor", "DownloadReport", "OfflineListStore", "OfflinePackageManager"]
