"""Report/notification lifecycle engine for the impound admin console."""

__version__ = "0.1.0"
