"""
wiretorrent: bencode codec and single-peer BitTorrent wire protocol client.
"""
__version__ = "0.1.0"
