"""
Shop Cache Service

Read-heavy shop API whose reads go through a cache consistency engine that
guards the primary store against cache penetration and cache breakdown.
"""

__version__ = "1.0.0"
