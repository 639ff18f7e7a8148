"""Income and billing engine for a therapy clinic."""

__version__ = "0.1.0"
