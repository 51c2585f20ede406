"""Platform adapters: one per external market source, all mapping to Market."""

from predhub.adapters.base import PlatformAdapter
from predhub.adapters.limitless import LimitlessAdapter
from predhub.adapters.polkamarkets import PolkamarketsAdapter
from predhub.adapters.polymarket import PolymarketAdapter

__all__ = ["PlatformAdapter", "PolymarketAdapter", "PolkamarketsAdapter", "LimitlessAdapter"]
