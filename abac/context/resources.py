"""
ABAC Context - Resource Attribute Extraction
============================================
Turns a resource entity into a flat AttributeMap.

Resolution order:
    1. Mapper registered for the entity's type (or nearest base class)
    2. Mapping entities: copied key by key
    3. Dataclass instances: one entry per field
    4. Other objects: public instance attributes

Nested values are passed through as-is; nothing is flattened.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Iterable, Mapping, Union

from abac.attributes.models import EMPTY_ATTRIBUTES, AttributeMap

logger = logging.getLogger("abac.context")

ResourceMapper = Callable[[Any], Union[Mapping[str, Any], Iterable[tuple[str, Any]]]]


class ResourceAttributeExtractor:
    def __init__(self, mappers: Mapping[type, ResourceMapper] | None = None):
        self._mappers: dict[type, ResourceMapper] = {}
        for resource_type, mapper in (mappers or {}).items():
            self.register(resource_type, mapper)

    def register(self, resource_type: type, mapper: ResourceMapper) -> None:
        if not isinstance(resource_type, type):
            raise ValueError("resource_type must be a class.")
        if not callable(mapper):
            raise ValueError("mapper must be callable.")
        if resource_type in self._mappers:
            raise ValueError(
                f"Mapper for '{resource_type.__name__}' is already registered."
            )
        self._mappers[resource_type] = mapper

    def extract(self, resource: Any) -> AttributeMap:
        if resource is None:
            return EMPTY_ATTRIBUTES

        mapper = self._find_mapper(type(resource))
        if mapper is not None:
            return AttributeMap(mapper(resource))

        if isinstance(resource, Mapping):
            return AttributeMap((str(key), value) for key, value in resource.items())

        if dataclasses.is_dataclass(resource) and not isinstance(resource, type):
            return AttributeMap(
                (f.name, getattr(resource, f.name))
                for f in dataclasses.fields(resource)
                if not f.name.startswith("_")
            )

        public = self._public_attributes(resource)
        if public is None:
            logger.debug(
                f"no attribute mapping for resource type "
                f"'{type(resource).__name__}'; extracted nothing"
            )
            return EMPTY_ATTRIBUTES
        return AttributeMap(public)

    def _find_mapper(self, resource_type: type) -> ResourceMapper | None:
        for klass in resource_type.__mro__:
            mapper = self._mappers.get(klass)
            if mapper is not None:
                return mapper
        return None

    @staticmethod
    def _public_attributes(resource: Any) -> list[tuple[str, Any]] | None:
        if isinstance(resource, (str, bytes, int, float, bool, list, tuple, set)):
            return None
        try:
            values = vars(resource)
        except TypeError:
            slots = getattr(type(resource), "__slots__", None)
            if not slots:
                return None
            if isinstance(slots, str):
                slots = (slots,)
            return [
                (name, getattr(resource, name))
                for name in slots
                if not name.startswith("_") and hasattr(resource, name)
            ]
        return [
            (name, value)
            for name, value in values.items()
            if not name.startswith("_")
        ]
