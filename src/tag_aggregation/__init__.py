"""
Tag Aggregation - hashtag timeline collector for Mastodon servers.

This package polls hashtag timelines from one or more feed sources, stores
deduplicated posts in a small relational store, and reports tagged posts
over a trailing time window.
"""

__version__ = "0.1.0"
