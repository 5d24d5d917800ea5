from greenbook.access.hierarchy import DEFAULT_HIERARCHY, HierarchyPolicy, UnitTree
from greenbook.access.resolver import AccessResolver
from greenbook.access.aggregator import AccessAggregator

__all__ = [
    "AccessAggregator",
    "AccessResolver",
    "DEFAULT_HIERARCHY",
    "HierarchyPolicy",
    "UnitTree",
]
