"""
Collection Access Core.

External collection access layer for the vinyl dashboard: encrypted linked
accounts, a shared remote rate budget, TTL result caching and
cross-account aggregation with per-user exclusion filtering.
"""

__version__ = "0.1.0"
