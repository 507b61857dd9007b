#!/usr/bin/env python3
"""
Field Normalizer - legacy field encodings to target representations

All functions are pure and never raise: malformed input is passed through
best-effort and the record-level failure handling in the orchestrator deals
with anything the target store rejects.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)


def normalize_colour(value: Any) -> Any:
    """Convert a legacy named colour ("RED") to the target form ("Red").

    Hex codes pass through unchanged, as do empty and non-string values.
    """
    if not isinstance(value, str) or not value:
        return value
    if value.startswith('#'):
        return value
    return value[0] + value[1:].lower()


def decode_json(value: Any, default: Any = None) -> Any:
    """Decode a JSON blob column once.

    Already structured values (drivers with native JSON support) are returned
    as-is. Strings that are not valid JSON are returned unchanged.
    """
    if value is None:
        return default
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8', errors='replace')
    if not isinstance(value, str):
        return value
    if not value.strip():
        return default
    try:
        return json.loads(value)
    except ValueError:
        logger.debug(f"Leaving undecodable JSON value as-is: {value[:40]!r}")
        return value


def extract_blocklist_roles(blacklist: Any) -> List[Any]:
    """Pull the ``roles`` list out of a legacy guild blocklist object."""
    decoded = decode_json(blacklist, default={})
    if not isinstance(decoded, dict):
        return []
    roles = decoded.get('roles')
    return list(roles) if isinstance(roles, (list, tuple)) else []


def decode_list(value: Any) -> List[Any]:
    """Decode a JSON list column (role ids, message ids); [] when absent."""
    decoded = decode_json(value, default=[])
    if isinstance(decoded, (list, tuple)):
        return list(decoded)
    return []


def decode_tags(value: Any) -> List[Tuple[str, str]]:
    """Legacy tag object ``{name: content}`` as ordered (name, content) pairs."""
    decoded = decode_json(value, default={})
    if not isinstance(decoded, dict):
        return []
    return [(str(name), opaque_text(content)) for name, content in decoded.items()]


def coerce_flag(value: Any) -> bool:
    """Strict boolean by truthiness (legacy flags are 0/1, strings or NULL)."""
    return bool(value)


def opaque_text(value: Any) -> Optional[str]:
    """Copy a content field through as text.

    Strings are returned unchanged; structured payloads (a JSON column
    decoded by the driver) are serialised back to JSON text.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def normalize_timestamp(value: Any) -> Any:
    """Parse a legacy timestamp into an aware UTC datetime.

    Sequelize's SQLite dialect stores ``2022-01-31 18:05:12.345 +00:00``;
    network dialects hand back datetimes already. Anything unparseable is
    passed through.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        return value
    text = value.strip().replace(' +', '+').replace(' -', '-')
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def encode_json(value: Any) -> Optional[str]:
    """Serialise a structured value for a JSON text column in the target."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
