"""
Payload fingerprints (ETags) for the mobile cache.
"""

import hashlib
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

DEFAULT_PREFIX = "resource"
DEFAULT_LENGTH = 12


def _select(payload: Any, fields: Optional[Sequence[str]]) -> Any:
    """Project a payload onto its significant fields.

    Missing fields become ``""`` so that adding or dropping a field still
    changes the digest. Lists are projected element by element.
    """
    if fields is None:
        return payload
    if isinstance(payload, list):
        return [_select(item, fields) for item in payload]
    if isinstance(payload, dict):
        selected = {}
        for field in fields:
            value = payload.get(field)
            selected[field] = "" if value is None else value
        return selected
    return payload


def canonical_json(value: Any) -> str:
    """Serialize ``value`` deterministically."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def fingerprint(
    payload: Any,
    significant_fields: Optional[Sequence[str]] = None,
    prefix: str = DEFAULT_PREFIX,
    length: int = DEFAULT_LENGTH,
) -> str:
    """Return a quoted ``"<prefix>-<hex>"`` digest usable as a strong ETag."""
    body = canonical_json(_select(payload, significant_fields))
    digest = hashlib.md5(body.encode("utf-8")).hexdigest()[:length]
    return f'"{prefix}-{digest}"'


def _normalize_etag(tag: str) -> str:
    tag = tag.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    return tag.strip('"')


def etags_match(if_none_match: Optional[str], etag: Optional[str]) -> bool:
    """Evaluate an ``If-None-Match`` header value against ``etag``."""
    if not if_none_match or not etag:
        return False
    target = _normalize_etag(etag)
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate and _normalize_etag(candidate) == target:
            return True
    return False


class FingerprintRegistry:
    """Allow-list of significant fields per cached resource type.

    Resources registered with ``None`` hash their whole payload.
    """

    def __init__(self, fields: Optional[Dict[str, Optional[Iterable[str]]]] = None):
        self._fields: Dict[str, Optional[List[str]]] = {}
        for resource, resource_fields in (fields or {}).items():
            self.register(resource, resource_fields)

    def register(self, resource: str, fields: Optional[Iterable[str]]) -> None:
        self._fields[resource] = list(fields) if fields is not None else None

    def fields_for(self, resource: str) -> Optional[List[str]]:
        if resource not in self._fields:
            raise KeyError(f"No fingerprint fields registered for resource '{resource}'")
        return self._fields[resource]

    def __contains__(self, resource: str) -> bool:
        return resource in self._fields

    def resources(self) -> List[str]:
        return sorted(self._fields)

    def fingerprint(self, resource: str, payload: Any) -> str:
        return fingerprint(payload, self.fields_for(resource), prefix=resource)


RADIO_FIELDS = ("stream_url", "metadata_url", "station_name", "connection_status")

CARD_FIELDS = (
    "id",
    "title",
    "description",
    "imageUrl",
    "redirectUrl",
    "isFeatured",
    "displayOrder",
    "isActive",
    "updatedAt",
)

SETTINGS_FIELDS = (
    "showOnlyLastActivePoll",
    "maxNewsCount",
    "enablePolls",
    "enableNews",
    "playerLogoUrl",
    "cardDisplayMode",
    "maxFeaturedCards",
    "enableCardAnimation",
    "maintenanceMode",
    "minimumAppVersion",
    "forceUpdate",
)

NEWS_FIELDS = ("items", "pagination")

POLL_FIELDS = ("id", "title", "description", "pollType", "startDate", "endDate", "isActive", "items", "totalVotes")


def default_registry() -> FingerprintRegistry:
    """Registry covering every resource served by the mobile API."""
    return FingerprintRegistry({
        "radio": RADIO_FIELDS,
        "cards": CARD_FIELDS,
        "card": CARD_FIELDS,
        "settings": SETTINGS_FIELDS,
        "news": NEWS_FIELDS,
        "polls": POLL_FIELDS,
    })
