"""RecVault: provider response caching and watch-history sync core."""

__version__ = "0.1.0"
