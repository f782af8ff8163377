#!/usr/bin/env python3
import argparse
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from csv_contentstack import contentstack_client as cc
from csv_contentstack.flatten import flatten_fields
from csv_contentstack.importer import EntryImporter, build_entry
from csv_contentstack.io import read_any_rows, write_results_csv
from csv_contentstack.log import ImportLog
from csv_contentstack.matching import apply_overrides, build_mappings
from csv_contentstack.references import ReferenceCache
from csv_contentstack.schema import load_schema_file


def load_env(env_path: Optional[str]) -> None:
    project_env = Path(__file__).resolve().parent.parent / ".env"
    for p in (project_env, Path.cwd() / ".env"):
        if p.exists():
            load_dotenv(p)
    if env_path:
        load_dotenv(env_path, override=True)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    # Early parse to pick up --env-file so the remaining defaults come from env
    env_only = argparse.ArgumentParser(add_help=False)
    env_only.add_argument("--env-file", default="")
    early, _ = env_only.parse_known_args(argv)
    load_env(early.env_file or None)

    p = argparse.ArgumentParser(description="Import CSV rows as Contentstack entries.", parents=[env_only])
    p.add_argument("--csv", required=True, help="CSV (or .xlsx) file to import")
    p.add_argument("--schema", default="", help="Content type schema JSON file; fetched from the API when omitted")
    p.add_argument("--mapping", default="", help='JSON file of overrides: {"CSV column": "field.path" | "skip"}')
    p.add_argument("--api-key", default=os.getenv("CONTENTSTACK_API_KEY", ""), help="Stack API key")
    p.add_argument("--management-token", default=os.getenv("CONTENTSTACK_MANAGEMENT_TOKEN", ""), help="Management token")
    p.add_argument("--host", default=os.getenv("CONTENTSTACK_HOST", cc.DEFAULT_HOST), help="API host (default: api.contentstack.io)")
    p.add_argument("--content-type", default=os.getenv("CONTENTSTACK_CONTENT_TYPE", ""), help="Content type UID")
    p.add_argument("--locale", default=os.getenv("CONTENTSTACK_LOCALE", "en-us"))
    p.add_argument("--publish", action="store_true", help="Publish each created/updated entry")
    p.add_argument("--environment", default=os.getenv("CONTENTSTACK_ENVIRONMENT", ""), help="Publish environment")
    p.add_argument("--delay", type=float, default=float(os.getenv("IMPORT_ROW_DELAY", "0.1")), help="Seconds to wait between rows")
    p.add_argument("--limit", type=int, default=0, help="Only import the first N rows; 0 means all")
    p.add_argument("--resolve-references", action="store_true", help="Look up reference cells by title in the referenced content type")
    p.add_argument("--dry-run", action="store_true", help="Print the entry documents without calling the API")
    p.add_argument("--report", default="", help="Write per-row results to this CSV")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v for INFO, -vv for DEBUG)")
    return p.parse_args(argv)


def fail(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    data = read_any_rows(Path(args.csv))
    if not data.headers:
        fail(f"No header row found in {args.csv}")
    rows = data.rows[: args.limit] if args.limit > 0 else data.rows

    needs_api = not args.dry_run or not args.schema
    if needs_api:
        missing = []
        if not args.api_key:
            missing.append("--api-key or CONTENTSTACK_API_KEY")
        if not args.management_token:
            missing.append("--management-token or CONTENTSTACK_MANAGEMENT_TOKEN")
        if not args.content_type:
            missing.append("--content-type or CONTENTSTACK_CONTENT_TYPE")
        if missing:
            fail(f"Missing required config: {', '.join(missing)}")
    if args.publish and not args.environment:
        fail("--publish needs --environment or CONTENTSTACK_ENVIRONMENT")

    cfg = cc.ContentstackConfig(
        api_key=args.api_key,
        management_token=args.management_token,
        host=args.host,
        content_type=args.content_type,
        environment=args.environment,
        locale=args.locale,
    )
    session = cc.build_session(cfg) if needs_api else None

    import_log = ImportLog()
    schema = load_schema_file(Path(args.schema)) if args.schema else cc.fetch_schema(session, cfg)
    resolver = cc.ContentstackSchemaResolver(session, cfg) if session is not None else None
    flat = flatten_fields(schema, resolver=resolver, log=import_log)
    for w in flat.warnings:
        print(f"warning: {w}", file=sys.stderr)

    mappings = build_mappings(data.headers, flat.fields)
    if args.mapping:
        overrides = json.loads(Path(args.mapping).read_text(encoding="utf-8"))
        mappings = apply_overrides(mappings, overrides, flat.fields)
    for m in mappings:
        print(f"{m.csv_column!r} -> {m.target_field_path} ({m.field_type}{', required' if m.is_required else ''})")

    references = None
    if args.resolve_references and session is not None:
        references = cc.make_reference_resolver(session, cfg, cache=ReferenceCache())

    if args.dry_run:
        for i, row in enumerate(rows):
            built = build_entry(row, mappings, i, log=import_log, references=references, seed_title=True)
            if built.missing_required:
                print(f"row {i + 1}: missing required field {built.missing_required}")
                continue
            print(json.dumps({"row": i + 1, "entry": built.document}, indent=2))
        return 0

    importer = EntryImporter(
        repository=cc.ContentstackEntryRepository(session, cfg),
        mappings=mappings,
        publish_environment=args.environment if args.publish else None,
        row_delay=args.delay,
        references=references,
        log=import_log,
    )

    def progress(result) -> None:
        status = result.action + (" +published" if result.published else "")
        print(f"row {result.row_index + 1}/{len(rows)} -> {status} {result.entry_uid or ''} {result.error or ''}".rstrip())

    # Ctrl-C finishes the current row, then stops
    previous_handler = signal.signal(signal.SIGINT, lambda *_: importer.stop())
    try:
        summary = importer.run(rows, on_result=progress)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    if args.report:
        write_results_csv(Path(args.report), summary.results)
    c = summary.counters()
    print(
        f"Import complete. created={c['created']} updated={c['updated']} skipped={c['skipped']} "
        f"failed={c['failed']} published={c['published']}"
    )
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
