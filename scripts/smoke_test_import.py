#!/usr/bin/env python3
"""Basic smoke test for a CSV + schema pair.

Builds the entry documents for a sample input without calling Contentstack
and checks that every row produces a document.
"""
import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'src'))

from csv_contentstack.flatten import flatten_fields_sync  # type: ignore
from csv_contentstack.importer import build_entry  # type: ignore
from csv_contentstack.io import read_any_rows  # type: ignore
from csv_contentstack.log import ImportLog  # type: ignore
from csv_contentstack.matching import build_mappings  # type: ignore
from csv_contentstack.schema import load_schema_file  # type: ignore


def main() -> int:
    sample = ROOT / 'data' / 'input' / 'entries.csv'
    schema_path = ROOT / 'data' / 'input' / 'content_type.json'
    if not sample.exists() or not schema_path.exists():
        print(f"Sample input not found: {sample} / {schema_path}")
        return 0

    data = read_any_rows(sample)
    fields = flatten_fields_sync(load_schema_file(schema_path))
    mappings = build_mappings(data.headers, fields)
    log = ImportLog()
    docs = []
    for i, row in enumerate(data.rows):
        built = build_entry(row, mappings, i, log=log, seed_title=True)
        if built.missing_required:
            print(f"Row {i + 1}: missing required field {built.missing_required}")
            continue
        docs.append(built.document)
    if not docs:
        print("Smoke test failed: no documents produced")
        return 1
    print(f"Smoke test ok: built {len(docs)}/{len(data.rows)} documents, {len(log.warnings())} warnings")
    print("First document:", json.dumps(docs[0], indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
