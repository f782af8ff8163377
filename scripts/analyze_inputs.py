#!/usr/bin/env python3
import sys
from pathlib import Path
from collections import Counter

sys.path.append(str(Path(__file__).resolve().parents[1] / 'src'))
from csv_contentstack.flatten import flatten_fields_sync  # type: ignore
from csv_contentstack.io import read_any_rows  # type: ignore
from csv_contentstack.matching import find_matching_field  # type: ignore
from csv_contentstack.schema import load_schema_file  # type: ignore

def main():
    if len(sys.argv) < 3:
        print('usage: analyze_inputs.py DATA.csv CONTENT_TYPE.json')
        return 2
    data = read_any_rows(Path(sys.argv[1]))
    fields = flatten_fields_sync(load_schema_file(Path(sys.argv[2])))

    print(f'Rows: {len(data.rows)}  Columns: {len(data.headers)}  Schema fields: {len(fields)}\n')
    print('Column matches:')
    matched = set()
    for h in data.headers:
        m = find_matching_field(h, fields)
        filled = sum(1 for r in data.rows if (r.get(h) or '').strip())
        target = m.field.field_path if m.field else '(skip)'
        if m.field:
            matched.add(m.field.field_path)
        print(f'- {h!r:30} -> {target:35} confidence={m.confidence:3}  filled={filled}/{len(data.rows)}')

    missing = [f.field_path for f in fields if f.mandatory and f.field_path not in matched]
    if missing:
        print('\nRequired fields with no column:')
        for p in missing:
            print(f'- {p}')

    types = Counter(f.data_type for f in fields)
    print('\nSchema field types:')
    for k, v in types.most_common():
        print(f'- {k}: {v}')

if __name__ == '__main__':
    raise SystemExit(main())
