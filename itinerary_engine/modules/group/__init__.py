"""modules/group: group preference aggregation."""

from itinerary_engine.modules.group.preference_aggregator import PreferenceAggregator

__all__ = ["PreferenceAggregator"]
