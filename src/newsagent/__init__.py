"""NewsAgent: daily news digest with narrated audio."""

__version__ = "0.2.0"
