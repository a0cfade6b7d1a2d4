"""Storage, caching and cluster-coordination building blocks for a partitioned message queue."""

__version__ = "0.1.0"