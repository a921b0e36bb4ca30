"""Building blocks for service applications: errors, caches, configuration, IDs, paging, tokens and logging."""

__version__ = "0.1.0"