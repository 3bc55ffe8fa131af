"""Monitor and control client for an alternator regulator's HTTP API."""

__version__ = "0.1.0"
