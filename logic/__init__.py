"""
Application Logic Layer for the board service

This module provides the components that sit between the caller and the
store: board catalog, subscription lifecycle and statistics.
"""

from logic.board_catalog import BoardCatalog
from logic.subscription_manager import SubscriptionManager, SubscriptionAction, next_subscription_state
from logic.statistics_aggregator import StatisticsAggregator

__all__ = [
    'BoardCatalog',
    'SubscriptionManager',
    'SubscriptionAction',
    'next_subscription_state',
    'StatisticsAggregator',
]
