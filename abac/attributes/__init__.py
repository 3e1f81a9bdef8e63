"""
ABAC Attributes - Public API
============================
"""

from abac.attributes.cache import CachedAttributeStore, CacheStats
from abac.attributes.db_provider import DbAttributeStore
from abac.attributes.merger import AttributeMerger
from abac.attributes.models import (
    EMPTY_ATTRIBUTES,
    AttributeMap,
    AttributeRecord,
    AttributeScope,
)
from abac.attributes.provider import AttributeStore, InMemoryAttributeStore

__all__ = [
    "AttributeMap",
    "AttributeMerger",
    "AttributeRecord",
    "AttributeScope",
    "AttributeStore",
    "CacheStats",
    "CachedAttributeStore",
    "DbAttributeStore",
    "EMPTY_ATTRIBUTES",
    "InMemoryAttributeStore",
]
