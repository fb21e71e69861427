"""transgate - translation gateway backend adapters."""

__version__ = "0.1.0"
