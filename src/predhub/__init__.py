"""PredHub - multi-platform prediction market aggregation and synthetic chart series."""

__version__ = "0.1.0"
