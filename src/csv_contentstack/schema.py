from __future__ import annotations
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional


SKIP = "skip"

FIELD_TYPES = {
    "number": "number",
    "boolean": "boolean",
    "isodate": "date",
    "reference": "reference",
    "file": "file",
    "link": "link",
    "select": "select",
    "blocks": "blocks",
    "global_field": "global_field",
}


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str


@dataclass
class BlockDefinition:
    uid: str
    title: str
    schema: List["SchemaField"] = field(default_factory=list)


@dataclass
class SchemaField:
    uid: str
    display_name: str
    data_type: str = "text"
    mandatory: bool = False
    reference_to: List[str] = field(default_factory=list)
    blocks: List[BlockDefinition] = field(default_factory=list)
    # None means "not included, resolve externally" for global fields
    schema: Optional[List["SchemaField"]] = None
    select_options: List[SelectOption] = field(default_factory=list)


@dataclass(frozen=True)
class FlattenedField:
    uid: str
    display_name: str
    data_type: str
    field_path: str
    mandatory: bool = False
    reference_to: tuple = ()
    parent_field_uid: Optional[str] = None
    block_uid: Optional[str] = None
    select_options: tuple = ()


@dataclass(frozen=True)
class FieldMapping:
    csv_column: str
    target_field_path: str = SKIP
    field_type: str = "text"
    is_required: bool = False
    reference_content_type: Optional[str] = None
    block_uid: Optional[str] = None
    parent_field_uid: Optional[str] = None
    select_options: tuple = ()

    @property
    def skipped(self) -> bool:
        return self.target_field_path == SKIP

    def with_changes(self, **changes) -> "FieldMapping":
        return replace(self, **changes)


def field_type_for(data_type: str) -> str:
    return FIELD_TYPES.get((data_type or "").strip().lower(), "text")


def _select_options(raw: Dict) -> List[SelectOption]:
    enum = raw.get("enum") or {}
    # Contentstack nests choices under enum.choices; older exports put the list directly
    choices = enum.get("choices") if isinstance(enum, dict) else enum
    out: List[SelectOption] = []
    for c in choices or []:
        if isinstance(c, dict):
            value = str(c.get("value", c.get("key", "")))
            label = str(c.get("text") or c.get("label") or c.get("key") or value)
        else:
            value = label = str(c)
        out.append(SelectOption(value=value, label=label))
    return out


def field_from_dict(raw: Dict) -> SchemaField:
    """Build a SchemaField from one entry of a content type's JSON schema."""
    reference_to = raw.get("reference_to") or []
    if isinstance(reference_to, str):
        reference_to = [reference_to]
    nested = raw.get("schema")
    data_type = raw.get("data_type") or "text"
    # dropdown/radio fields are text (or number) fields carrying an enum
    if raw.get("enum") and data_type in ("text", "number"):
        data_type = "select"
    blocks = [
        BlockDefinition(
            uid=b.get("uid", ""),
            title=b.get("title") or b.get("uid", ""),
            schema=[field_from_dict(f) for f in (b.get("schema") or [])],
        )
        for b in (raw.get("blocks") or [])
    ]
    return SchemaField(
        uid=raw.get("uid", ""),
        display_name=raw.get("display_name") or raw.get("uid", ""),
        data_type=data_type,
        mandatory=bool(raw.get("mandatory", False)),
        reference_to=[str(r) for r in reference_to],
        blocks=blocks,
        schema=[field_from_dict(f) for f in nested] if nested is not None else None,
        select_options=_select_options(raw),
    )


def load_schema(data) -> List[SchemaField]:
    """Accept a content type export, a {"schema": [...]} object or a bare field list."""
    if isinstance(data, dict):
        if isinstance(data.get("content_type"), dict):
            data = data["content_type"].get("schema") or []
        elif isinstance(data.get("global_field"), dict):
            data = data["global_field"].get("schema") or []
        else:
            data = data.get("schema") or []
    if not isinstance(data, list):
        raise ValueError("schema must be a list of fields")
    return [field_from_dict(f) for f in data]


def load_schema_file(path: Path) -> List[SchemaField]:
    return load_schema(json.loads(Path(path).read_text(encoding="utf-8")))
