from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .errors import SchemaResolutionError
from .log import ImportLog
from .schema import FlattenedField, SchemaField


logger = logging.getLogger(__name__)

# (global_field_uid) -> nested schema; raises SchemaResolutionError
SchemaResolver = Callable[[str], List[SchemaField]]


@dataclass
class FlattenResult:
    fields: List[FlattenedField] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def by_path(self, field_path: str) -> Optional[FlattenedField]:
        for f in self.fields:
            if f.field_path == field_path:
                return f
        return None


def _leaf(f: SchemaField, field_path: str, parent_uid: str, display_name: Optional[str] = None) -> FlattenedField:
    return FlattenedField(
        uid=f.uid,
        display_name=display_name or f.display_name,
        data_type=f.data_type,
        field_path=field_path,
        mandatory=f.mandatory,
        reference_to=tuple(f.reference_to),
        parent_field_uid=parent_uid or None,
        select_options=tuple(f.select_options),
    )


def _block_members(f: SchemaField, field_path: str) -> List[FlattenedField]:
    out: List[FlattenedField] = []
    for block in f.blocks:
        for member in block.schema:
            out.append(
                FlattenedField(
                    uid=member.uid,
                    display_name=f"{f.display_name} > {block.title} > {member.display_name}",
                    data_type=member.data_type,
                    field_path=f"{field_path}.{block.uid}.{member.uid}",
                    mandatory=member.mandatory,
                    reference_to=tuple(member.reference_to),
                    block_uid=block.uid,
                    select_options=tuple(member.select_options),
                )
            )
    return out


def flatten_fields(
    schema: List[SchemaField],
    base_path: str = "",
    parent_uid: str = "",
    resolver: Optional[SchemaResolver] = None,
    log: Optional[ImportLog] = None,
) -> FlattenResult:
    """Expand a content type schema into addressable leaf fields.

    Modular block containers are replaced by their members
    (``container.block.member``); global fields are listed themselves and
    followed by their nested members (``global.member``), using ``resolver``
    to fetch nested schemas the content type does not embed. A global field
    whose schema cannot be resolved stays in the list with the failure reason
    in its display name, and a warning is recorded.
    """
    result = FlattenResult()
    for f in schema:
        field_path = f"{base_path}.{f.uid}" if base_path else f.uid

        if f.data_type == "blocks":
            result.fields.extend(_block_members(f, field_path))
            continue

        if f.data_type != "global_field":
            result.fields.append(_leaf(f, field_path, parent_uid))
            continue

        nested = f.schema
        if nested is None:
            global_uid = f.reference_to[0] if f.reference_to else f.uid
            try:
                if resolver is None:
                    raise SchemaResolutionError("no_config")
                nested = resolver(global_uid)
            except SchemaResolutionError as e:
                display = f"{f.display_name} (global field - {e.reason})"
                result.fields.append(_leaf(f, field_path, parent_uid, display_name=display))
                msg = f"Global field '{field_path}' ({global_uid}) could not be expanded: {e}"
                result.warnings.append(msg)
                if log is not None:
                    log.warning(msg, field_path=field_path)
                else:
                    logger.warning(msg)
                continue

        result.fields.append(_leaf(f, field_path, parent_uid))
        if nested:
            sub = flatten_fields(nested, base_path=field_path, parent_uid=f.uid, resolver=resolver, log=log)
            result.fields.extend(sub.fields)
            result.warnings.extend(sub.warnings)
    return result


def flatten_fields_sync(schema: List[SchemaField], base_path: str = "", parent_uid: str = "") -> List[FlattenedField]:
    """Same traversal as flatten_fields for fully embedded schemas; never fetches.

    Global fields without an embedded schema are listed but not expanded.
    """
    out: List[FlattenedField] = []
    for f in schema:
        field_path = f"{base_path}.{f.uid}" if base_path else f.uid
        if f.data_type == "blocks":
            out.extend(_block_members(f, field_path))
            continue
        out.append(_leaf(f, field_path, parent_uid))
        if f.data_type == "global_field" and f.schema:
            out.extend(flatten_fields_sync(f.schema, base_path=field_path, parent_uid=f.uid))
    return out
