"""Decision cache."""

from hbac.cache.manager import CacheManager, make_decision_key

__all__ = ["CacheManager", "make_decision_key"]
