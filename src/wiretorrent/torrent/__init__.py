"""
Torrent metainfo parsing.
"""
from .metainfo import TorrentMeta

__all__ = ['TorrentMeta']
