"""
ABAC Context - Evaluation Context
=================================
Immutable snapshot of subject, resource and environment attributes
used for exactly one authorization decision.

Blob form (for policy engines that need a string-encoded context):
    flat dict[str, str], every value JSON-encoded, keys prefixed
        subject.*   identity, roles, groups
        request.*   workstream, resource, action
        user.*      merged subject attributes
        resource.*  resource entity attributes
        env.*       timestamp, address, environment flags; env.hour is
                    the hour in the business timezone
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from abac.attributes.models import AttributeMap


USER_PREFIX = "user."
RESOURCE_PREFIX = "resource."
ENV_PREFIX = "env."
SUBJECT_PREFIX = "subject."
REQUEST_PREFIX = "request."

ENV_REQUEST_TIME = "requestTime"
ENV_CLIENT_ADDRESS = "clientAddress"
ENV_BUSINESS_HOURS = "isBusinessHours"
ENV_INTERNAL_NETWORK = "isInternalNetwork"
ENV_HOUR = "hour"
ENV_BUSINESS_TIMEZONE = "businessTimezone"


def _starts_with(key: str, prefix: str) -> bool:
    return key[: len(prefix)].casefold() == prefix


@dataclass(frozen=True)
class EvaluationContext:
    subject_id: str
    workstream_id: str
    resource: str
    action: str
    request_time: datetime
    display_name: str | None = None
    email: str | None = None
    roles: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    attributes: AttributeMap = field(default_factory=AttributeMap)
    resource_attributes: AttributeMap = field(default_factory=AttributeMap)
    client_address: str | None = None
    is_business_hours: bool = False
    is_internal_network: bool = False
    business_timezone: str = "UTC"
    environment: AttributeMap = field(default_factory=AttributeMap, init=False, repr=False, compare=False)

    def __post_init__(self):
        for name in ("subject_id", "workstream_id", "resource", "action"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string.")

        if not isinstance(self.request_time, datetime):
            raise ValueError("request_time must be a datetime.")
        if self.request_time.tzinfo is None:
            raise ValueError("request_time must be timezone-aware.")
        object.__setattr__(self, "request_time", self.request_time.astimezone(timezone.utc))

        if not isinstance(self.business_timezone, str) or not self.business_timezone.strip():
            raise ValueError("business_timezone must be a non-empty string.")
        try:
            local_zone = ZoneInfo(self.business_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"business_timezone '{self.business_timezone}' is not a known timezone."
            ) from exc

        object.__setattr__(self, "roles", tuple(self.roles))
        object.__setattr__(self, "groups", tuple(self.groups))
        for name in ("attributes", "resource_attributes"):
            value = getattr(self, name)
            if not isinstance(value, AttributeMap):
                object.__setattr__(self, name, AttributeMap(value))

        object.__setattr__(
            self,
            "environment",
            AttributeMap(
                {
                    ENV_REQUEST_TIME: self.request_time.isoformat(),
                    ENV_CLIENT_ADDRESS: self.client_address,
                    ENV_BUSINESS_HOURS: bool(self.is_business_hours),
                    ENV_INTERNAL_NETWORK: bool(self.is_internal_network),
                    ENV_HOUR: self.request_time.astimezone(local_zone).hour,
                    ENV_BUSINESS_TIMEZONE: self.business_timezone,
                }
            ),
        )

    # ══════════════════════════════════════════════════════════
    # LOOKUP
    # ══════════════════════════════════════════════════════════

    def get_attribute(self, name: str) -> Any:
        """Merged subject attribute, or None when absent."""
        return self.attributes.get(name)

    def get_resource_attribute(self, name: str) -> Any:
        return self.resource_attributes.get(name)

    def resolve(self, reference: str, default_source: str = "user") -> Any:
        """
        Resolve ``user.X``, ``resource.X``, ``env.X`` or ``subject.X``.
        An unprefixed name is looked up in ``default_source``.
        Returns None when the attribute is absent.
        """
        if not isinstance(reference, str) or not reference.strip():
            return None
        reference = reference.strip()

        if _starts_with(reference, USER_PREFIX):
            return self.attributes.get(reference[len(USER_PREFIX):])
        if _starts_with(reference, RESOURCE_PREFIX):
            return self.resource_attributes.get(reference[len(RESOURCE_PREFIX):])
        if _starts_with(reference, ENV_PREFIX):
            return self.environment.get(reference[len(ENV_PREFIX):])
        if _starts_with(reference, SUBJECT_PREFIX):
            return self._subject_fields().get(reference[len(SUBJECT_PREFIX):])

        if default_source == "resource":
            return self.resource_attributes.get(reference)
        if default_source == "env":
            return self.environment.get(reference)
        return self.attributes.get(reference)

    def _subject_fields(self) -> AttributeMap:
        return AttributeMap(
            {
                "id": self.subject_id,
                "displayName": self.display_name,
                "email": self.email,
                "roles": list(self.roles),
                "groups": list(self.groups),
            }
        )

    # ══════════════════════════════════════════════════════════
    # SERIALIZATION
    # ══════════════════════════════════════════════════════════

    def to_blob(self) -> dict[str, str]:
        blob: dict[str, str] = {}

        def put(key: str, value: Any) -> None:
            blob[key] = json.dumps(value, default=str, sort_keys=True)

        for key, value in self._subject_fields().items():
            put(SUBJECT_PREFIX + key, value)
        put(REQUEST_PREFIX + "workstream", self.workstream_id)
        put(REQUEST_PREFIX + "resource", self.resource)
        put(REQUEST_PREFIX + "action", self.action)
        for key, value in self.attributes.items():
            put(USER_PREFIX + key, value)
        for key, value in self.resource_attributes.items():
            put(RESOURCE_PREFIX + key, value)
        for key in (
            ENV_REQUEST_TIME,
            ENV_CLIENT_ADDRESS,
            ENV_BUSINESS_HOURS,
            ENV_INTERNAL_NETWORK,
            ENV_BUSINESS_TIMEZONE,
        ):
            put(ENV_PREFIX + key, self.environment[key])
        return blob

    def to_json(self) -> str:
        return json.dumps(self.to_blob(), sort_keys=True)

    @classmethod
    def from_blob(cls, blob: Mapping[str, str]) -> "EvaluationContext":
        """
        Rebuild a context from ``to_blob()`` output.

        Values that were not JSON-native (datetimes, decimals, objects)
        come back as their string form.
        """
        subject: dict[str, Any] = {}
        request: dict[str, Any] = {}
        env: dict[str, Any] = {}
        user_attrs: list[tuple[str, Any]] = []
        resource_attrs: list[tuple[str, Any]] = []

        for key, raw in blob.items():
            try:
                value = json.loads(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"blob value for '{key}' is not valid JSON.") from exc

            if _starts_with(key, USER_PREFIX):
                user_attrs.append((key[len(USER_PREFIX):], value))
            elif _starts_with(key, RESOURCE_PREFIX):
                resource_attrs.append((key[len(RESOURCE_PREFIX):], value))
            elif _starts_with(key, ENV_PREFIX):
                env[key[len(ENV_PREFIX):].casefold()] = value
            elif _starts_with(key, SUBJECT_PREFIX):
                subject[key[len(SUBJECT_PREFIX):].casefold()] = value
            elif _starts_with(key, REQUEST_PREFIX):
                request[key[len(REQUEST_PREFIX):].casefold()] = value

        request_time = env.get(ENV_REQUEST_TIME.casefold())
        if not isinstance(request_time, str):
            raise ValueError("blob is missing env.requestTime.")

        return cls(
            subject_id=subject.get("id"),
            workstream_id=request.get("workstream"),
            resource=request.get("resource"),
            action=request.get("action"),
            request_time=datetime.fromisoformat(request_time),
            display_name=subject.get("displayname"),
            email=subject.get("email"),
            roles=tuple(subject.get("roles") or ()),
            groups=tuple(subject.get("groups") or ()),
            attributes=AttributeMap(user_attrs),
            resource_attributes=AttributeMap(resource_attrs),
            client_address=env.get(ENV_CLIENT_ADDRESS.casefold()),
            is_business_hours=bool(env.get(ENV_BUSINESS_HOURS.casefold(), False)),
            is_internal_network=bool(env.get(ENV_INTERNAL_NETWORK.casefold(), False)),
            business_timezone=env.get(ENV_BUSINESS_TIMEZONE.casefold()) or "UTC",
        )
