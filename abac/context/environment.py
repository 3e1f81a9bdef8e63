"""
ABAC Context - Environment Provider
===================================
Business-hours and internal-network flags.
Pure functions of settings and input; no I/O.
"""

from __future__ import annotations

import ipaddress
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from abac.settings import AbacSettings


def hour_in_window(hour: int, start: int, end: int) -> bool:
    """[start, end) on a 24h dial; start > end wraps past midnight."""
    if start == end:
        return False
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def parse_address(address: str | None):
    if address is None or not isinstance(address, str):
        return None
    candidate = address.strip()
    if not candidate:
        return None
    # "[::1]:443" / "10.0.0.1:8080" as forwarded by some proxies
    if candidate.startswith("[") and "]" in candidate:
        candidate = candidate[1:candidate.index("]")]
    elif candidate.count(":") == 1:
        candidate = candidate.split(":", 1)[0]
    try:
        parsed = ipaddress.ip_address(candidate)
    except ValueError:
        return None
    if isinstance(parsed, ipaddress.IPv6Address) and parsed.ipv4_mapped is not None:
        return parsed.ipv4_mapped
    return parsed


def address_in_networks(address: str | None, networks) -> bool:
    parsed = parse_address(address)
    if parsed is None:
        return False
    for network in networks:
        if parsed.version == network.version and parsed in network:
            return True
    return False


class EnvironmentContextProvider:
    def __init__(self, settings: AbacSettings | None = None):
        self._settings = settings or AbacSettings()
        self._timezone = ZoneInfo(self._settings.business_timezone)
        self._networks = tuple(
            ipaddress.ip_network(cidr, strict=False)
            for cidr in self._settings.internal_networks
        )

    def is_within_business_hours(self, timestamp: datetime) -> bool:
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        local = timestamp.astimezone(self._timezone)
        return hour_in_window(
            local.hour,
            self._settings.business_hours_start,
            self._settings.business_hours_end,
        )

    @property
    def business_timezone(self) -> str:
        return self._settings.business_timezone

    def is_internal_network(self, address: str | None) -> bool:
        return address_in_networks(address, self._networks)
