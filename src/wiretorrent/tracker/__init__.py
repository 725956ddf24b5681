"""
Tracker package for announcing to HTTP BitTorrent trackers.
"""
from .http_tracker import HTTPTrackerClient, TrackerError
from .utils import compact_to_peers

__all__ = ['HTTPTrackerClient', 'TrackerError', 'compact_to_peers']
