from __future__ import annotations
import copy
from typing import Any, Dict, Optional


def merge_value(document: Dict, value: Any, field_path: str, block_uid: Optional[str] = None) -> Dict:
    """Return a copy of ``document`` with ``value`` placed at ``field_path``.

    Path grammar:
      ``field``                  scalar, overwritten
      ``container.block.field``  modular block (``block_uid`` required); values for the
                                 same block type collect in one ``{block: {...}}`` element
      ``group[.sub...].container.block.field``
                                 modular block inside global fields; the leading
                                 segments are walked as nested objects
      ``group.sub[.sub...]``     global field nesting, intermediate objects created

    None is a no-op so that absent values never appear in the payload.
    """
    if value is None:
        return document
    parts = field_path.split(".")
    if not field_path or any(not p for p in parts):
        raise ValueError(f"Invalid field path: {field_path!r}")
    result = copy.deepcopy(document)

    if block_uid:
        if len(parts) < 3:
            raise ValueError(f"Modular block path needs at least 3 segments: {field_path!r}")
        owner = _walk(result, parts[:-3])
        container, _, member = parts[-3:]
        blocks = owner.get(container)
        if not isinstance(blocks, list):
            blocks = []
            owner[container] = blocks
        instance = next(
            (b for b in blocks if isinstance(b, dict) and list(b.keys()) == [block_uid]),
            None,
        )
        if instance is None:
            instance = {block_uid: {}}
            blocks.append(instance)
        instance[block_uid][member] = value
        return result

    _walk(result, parts[:-1])[parts[-1]] = value
    return result


def _walk(document: Dict, parts) -> Dict:
    current = document
    for part in parts:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    return current
