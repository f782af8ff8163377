from __future__ import annotations
import json
import math
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from .log import ImportLog
from .references import ReferenceResolver
from .schema import FieldMapping


DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
]


def parse_number(raw: str) -> Optional[float]:
    text = raw.strip()
    if "_" in text:
        return None
    try:
        v = float(text)
    except ValueError:
        return None
    if not math.isfinite(v):
        return None
    return int(v) if v.is_integer() else v


def parse_boolean(raw: str) -> Optional[bool]:
    v = raw.strip()
    if v.lower() == "true" or v == "1":
        return True
    if v.lower() == "false" or v == "0":
        return False
    return None


def parse_date(raw: str) -> Optional[str]:
    """Return an ISO-8601 UTC timestamp (``2024-01-31T00:00:00.000Z``) or None."""
    v = raw.strip()
    dt: Optional[datetime] = None
    try:
        dt = datetime.fromisoformat(v[:-1] + "+00:00" if v.endswith(("Z", "z")) else v)
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                dt = datetime.strptime(v, fmt)
                break
            except ValueError:
                continue
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        dt = dt.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_link(raw: str) -> dict:
    v = raw.strip()
    if v.startswith("{"):
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict) and "href" in parsed:
            return parsed
    return {"href": v, "title": v}


def match_select(raw: str, options) -> Optional[str]:
    v = raw.strip()
    for o in options:
        if o.value == v or o.label == v:
            return o.value
    low = v.lower()
    for o in options:
        if o.value.lower() == low or o.label.lower() == low:
            return o.value
    return None


def transform_value(
    raw: Optional[str],
    mapping: FieldMapping,
    log: Optional[ImportLog] = None,
    row_index: Optional[int] = None,
    references: Optional[ReferenceResolver] = None,
) -> Any:
    """Convert one CSV cell into the payload value for ``mapping``'s field.

    Returns None when the cell should be left out of the entry: empty cells,
    values that do not parse for the field type, unmatched select options,
    unresolvable references, file cells and cells mapped onto container
    fields. Every such omission of a non-empty cell is recorded as a
    warning in ``log``.
    """
    if raw is None or not str(raw).strip():
        return None
    raw = str(raw)
    kind = mapping.field_type

    def warn(message: str) -> None:
        if log is not None:
            log.warning(message, row_index=row_index, field_path=mapping.target_field_path, raw_value=raw)

    if kind == "number":
        value = parse_number(raw)
        if value is None:
            warn(f"Not a number: {raw!r}; field omitted")
        return value

    if kind == "boolean":
        value = parse_boolean(raw)
        if value is None:
            warn(f"Not a boolean (expected true/false/1/0): {raw!r}; field omitted")
        return value

    if kind == "date":
        value = parse_date(raw)
        if value is None:
            warn(f"Invalid date: {raw!r}; field omitted")
        return value

    if kind == "reference":
        key = raw.strip()
        if not mapping.reference_content_type or references is None:
            return [{"uid": key}]
        try:
            uid = references.find_by_lookup_key(mapping.reference_content_type, key)
        except requests.RequestException as e:
            warn(f"Reference lookup in '{mapping.reference_content_type}' failed for {key!r}: {e}")
            return None
        if not uid:
            warn(f"No '{mapping.reference_content_type}' entry found for {key!r}; reference omitted")
            return None
        return [{"uid": uid, "_content_type_uid": mapping.reference_content_type}]

    if kind == "select":
        if not mapping.select_options:
            return raw.strip()
        value = match_select(raw, mapping.select_options)
        if value is None:
            allowed = ", ".join(o.value for o in mapping.select_options)
            warn(f"No select option matches {raw!r} (allowed: {allowed}); field omitted")
        return value

    if kind in ("global_field", "blocks"):
        warn(f"'{mapping.target_field_path}' is a container field; map its nested fields instead (got {raw!r})")
        return None

    if kind == "file":
        warn(f"File fields cannot be imported from CSV (got filename {raw!r}); field omitted")
        return None

    if kind == "link":
        return parse_link(raw)

    return raw.strip()
