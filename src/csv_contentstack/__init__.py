"""
CSV → Contentstack entry importer library.

This package provides modular building blocks for:
- Reading CSV/xlsx rows
- Flattening content type schemas (modular blocks, global fields) into leaf fields
- Auto-matching CSV columns to leaf fields
- Converting cells into typed values and merging them into nested entry documents
- Creating/updating/publishing entries through the Contentstack management API

Public API:
- schema.load_schema, schema.load_schema_file, schema.FieldMapping
- flatten.flatten_fields, flatten.flatten_fields_sync
- matching.find_matching_field, matching.build_mappings, matching.remap
- values.transform_value
- merge.merge_value
- importer.build_entry, importer.EntryImporter
- contentstack_client.build_session, contentstack_client.ContentstackEntryRepository
"""

from . import schema, flatten, matching, values, merge, importer, io, contentstack_client  # re-export modules

__all__ = [
    "schema",
    "flatten",
    "matching",
    "values",
    "merge",
    "importer",
    "io",
    "contentstack_client",
]
