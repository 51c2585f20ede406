"""HTTP API over the aggregator and price history service."""
