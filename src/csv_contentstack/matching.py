from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .schema import SKIP, FieldMapping, FlattenedField, field_type_for


logger = logging.getLogger(__name__)

HEURISTIC_CONFIDENCE = 80
MIN_CONFIDENCE = 70
MIN_MATCH_LENGTH = 3

SYNONYMS = {
    "title": ["display title", "entry title", "name"],
    "body": ["content", "description", "text"],
    "url": ["link", "href", "website"],
    "publication date": ["published date", "publish date", "date published"],
    "expiration date": ["expire date", "end date", "expires"],
}


@dataclass(frozen=True)
class MatchResult:
    field: Optional[FlattenedField]
    confidence: int


NO_MATCH = MatchResult(field=None, confidence=0)


def normalize_text(text: str) -> str:
    t = (text or "").lower()
    t = re.sub(r"[^a-z0-9\s]", "", t)
    return re.sub(r"\s+", " ", t).strip()


def text_variations(text: str) -> List[str]:
    n = normalize_text(text)
    variations = [
        n,
        n.replace(" ", ""),
        n.replace(" ", "_"),
        re.sub(r"display\s*", "", n),
        re.sub(r"\s*title\s*", "title", n),
    ]
    for key, values in SYNONYMS.items():
        if any(v in n for v in values):
            variations.append(key)
        if n == key:
            variations.extend(values)
    # dedupe, keep order
    return list(dict.fromkeys(variations))


def _field_variations(f: FlattenedField) -> set:
    out = set()
    for s in (f.uid, f.display_name, f.field_path):
        out.update(text_variations(s))
    return out


def find_matching_field(csv_header: str, fields: Iterable[FlattenedField]) -> MatchResult:
    """Pick the leaf field a CSV column most likely feeds.

    Exact uid, display name and path equality (100/95/90) are checked across
    every field before any normalized comparison, so an exact hit always wins.
    Otherwise the first field sharing a normalized variant with the header
    scores HEURISTIC_CONFIDENCE; anything under MIN_CONFIDENCE is no match.
    """
    fields = list(fields)
    for attr, confidence in (("uid", 100), ("display_name", 95), ("field_path", 90)):
        for f in fields:
            if getattr(f, attr) == csv_header:
                logger.debug("exact %s match %r -> %s (%s)", attr, csv_header, f.field_path, confidence)
                return MatchResult(field=f, confidence=confidence)

    header_vars = [v for v in text_variations(csv_header) if len(v) >= MIN_MATCH_LENGTH]
    best: Optional[FlattenedField] = None
    best_confidence = 0
    for f in fields:
        field_vars = _field_variations(f)
        confidence = HEURISTIC_CONFIDENCE if any(v in field_vars for v in header_vars) else 0
        if confidence > best_confidence:
            best, best_confidence = f, confidence

    if best is not None and best_confidence >= MIN_CONFIDENCE:
        logger.debug("heuristic match %r -> %s (%s)", csv_header, best.field_path, best_confidence)
        return MatchResult(field=best, confidence=best_confidence)
    logger.debug("no match for %r", csv_header)
    return NO_MATCH


def mapping_for(csv_column: str, f: Optional[FlattenedField]) -> FieldMapping:
    if f is None:
        return FieldMapping(csv_column=csv_column)
    return FieldMapping(
        csv_column=csv_column,
        target_field_path=f.field_path,
        field_type=field_type_for(f.data_type),
        is_required=f.mandatory,
        reference_content_type=(f.reference_to[0] if f.data_type == "reference" and f.reference_to else None),
        block_uid=f.block_uid,
        parent_field_uid=f.parent_field_uid,
        select_options=tuple(f.select_options),
    )


def build_mappings(csv_headers: Iterable[str], fields: Iterable[FlattenedField]) -> List[FieldMapping]:
    """One mapping per CSV column, skipped when nothing matches confidently."""
    fields = list(fields)
    out: List[FieldMapping] = []
    for header in csv_headers:
        match = find_matching_field(header, fields)
        out.append(mapping_for(header, match.field))
    return out


def remap(mapping: FieldMapping, target_field_path: str, fields: Iterable[FlattenedField]) -> FieldMapping:
    """Point an existing mapping at another field (or "skip"), re-deriving its attributes."""
    if target_field_path == SKIP:
        return FieldMapping(csv_column=mapping.csv_column)
    for f in fields:
        if f.field_path == target_field_path:
            return mapping_for(mapping.csv_column, f)
    raise KeyError(f"Unknown field path: {target_field_path}")


def apply_overrides(mappings: List[FieldMapping], overrides: dict, fields: Iterable[FlattenedField]) -> List[FieldMapping]:
    """Apply {csv column: field path | "skip"} overrides to an auto-built mapping."""
    fields = list(fields)
    out: List[FieldMapping] = []
    for m in mappings:
        target = overrides.get(m.csv_column)
        out.append(remap(m, target, fields) if target else m)
    return out
