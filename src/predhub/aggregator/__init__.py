"""Cross-platform market aggregation."""

from predhub.aggregator.service import Aggregator, build_aggregator, combine_stats, merge_markets

__all__ = ["Aggregator", "build_aggregator", "combine_stats", "merge_markets"]
