"""rbr - release artifact pipeline for the replibyte CLI."""

__version__ = "0.1.0"
