"""
ABAC - Engine Settings
======================
Reads the ``ABAC`` dict from Django settings into a frozen, validated
snapshot. Components accept an explicit ``AbacSettings`` so they can run
without Django configured (tests, scripts).
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


DEFAULT_INTERNAL_NETWORKS = (
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "127.0.0.0/8",
)


@dataclass(frozen=True)
class AbacSettings:
    business_hours_start: int = 8
    business_hours_end: int = 18
    business_timezone: str = "UTC"
    internal_networks: tuple[str, ...] = DEFAULT_INTERNAL_NETWORKS
    attribute_cache_ttl_seconds: int = 900
    attribute_cache_max_size: int = 5000

    def __post_init__(self):
        for name in ("business_hours_start", "business_hours_end"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int.")
            if value < 0 or value > 24:
                raise ValueError(f"{name} must be between 0 and 24.")

        if not isinstance(self.business_timezone, str) or not self.business_timezone.strip():
            raise ValueError("business_timezone must be a non-empty string.")
        try:
            ZoneInfo(self.business_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"business_timezone '{self.business_timezone}' is not a known timezone."
            ) from exc

        if isinstance(self.internal_networks, str):
            raise ValueError("internal_networks must be a sequence of CIDR strings.")
        networks = tuple(self.internal_networks)
        for cidr in networks:
            try:
                ipaddress.ip_network(cidr, strict=False)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"internal_networks entry '{cidr}' is not a valid CIDR.") from exc
        object.__setattr__(self, "internal_networks", networks)

        if self.attribute_cache_ttl_seconds <= 0:
            raise ValueError("attribute_cache_ttl_seconds must be positive.")
        if self.attribute_cache_max_size <= 0:
            raise ValueError("attribute_cache_max_size must be positive.")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "AbacSettings":
        raw = raw or {}
        defaults = cls()
        return cls(
            business_hours_start=raw.get("BUSINESS_HOURS_START", defaults.business_hours_start),
            business_hours_end=raw.get("BUSINESS_HOURS_END", defaults.business_hours_end),
            business_timezone=raw.get("BUSINESS_TIMEZONE", defaults.business_timezone),
            internal_networks=tuple(raw.get("INTERNAL_NETWORKS", defaults.internal_networks)),
            attribute_cache_ttl_seconds=raw.get(
                "ATTRIBUTE_CACHE_TTL_SECONDS", defaults.attribute_cache_ttl_seconds
            ),
            attribute_cache_max_size=raw.get(
                "ATTRIBUTE_CACHE_MAX_SIZE", defaults.attribute_cache_max_size
            ),
        )


def load_settings() -> AbacSettings:
    """Build ``AbacSettings`` from ``django.conf.settings.ABAC``."""
    from django.conf import settings

    return AbacSettings.from_mapping(getattr(settings, "ABAC", None))
