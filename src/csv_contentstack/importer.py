"""Row import orchestration.

Rows are processed strictly one after another: each row is turned into an
entry document (transform + merge per mapping), looked up by title, then
updated or created and optionally published. Problems are recorded per row
and the batch carries on; only ``stop()`` ends a run early, and it takes
effect between rows.
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from .log import ImportLog
from .merge import merge_value
from .references import ReferenceResolver
from .schema import FieldMapping
from .values import transform_value


logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"


class EntryRepository(Protocol):
    def find_by_title(self, title: str) -> Optional[Dict]:
        ...

    def create(self, document: Dict) -> str:
        ...

    def update(self, uid: str, document: Dict) -> None:
        ...

    def publish(self, uid: str, environment: str) -> None:
        ...


@dataclass
class RowBuild:
    document: Dict
    missing_required: Optional[str] = None


@dataclass
class ImportResult:
    row_index: int
    success: bool
    action: str
    entry_uid: Optional[str] = None
    published: bool = False
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "row_index": self.row_index,
            "success": self.success,
            "action": self.action,
            "entry_uid": self.entry_uid,
            "published": self.published,
            "error": self.error,
            "warnings": list(self.warnings),
        }


@dataclass
class ImportSummary:
    results: List[ImportResult] = field(default_factory=list)
    total_rows: int = 0
    stopped: bool = False

    def _count(self, action: str) -> int:
        return sum(1 for r in self.results if r.action == action)

    @property
    def created(self) -> int:
        return self._count(CREATED)

    @property
    def updated(self) -> int:
        return self._count(UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def published(self) -> int:
        return sum(1 for r in self.results if r.published)

    def counters(self) -> Dict[str, int]:
        return {
            "rows": self.total_rows,
            "processed": len(self.results),
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "published": self.published,
        }


def build_entry(
    row: Dict[str, str],
    mappings: Iterable[FieldMapping],
    row_index: int,
    log: Optional[ImportLog] = None,
    references: Optional[ReferenceResolver] = None,
    seed_title: bool = False,
) -> RowBuild:
    """Assemble the entry document for one CSV row in mapping order.

    Stops at the first required field whose cell is empty and reports its path.
    With ``seed_title`` a row that ends up without a title gets "Entry <n>".
    """
    document: Dict = {}
    for m in mappings:
        if m.skipped:
            continue
        raw = row.get(m.csv_column) or ""
        if not raw.strip():
            if m.is_required:
                return RowBuild(document=document, missing_required=m.target_field_path)
            continue
        value = transform_value(raw, m, log=log, row_index=row_index, references=references)
        document = merge_value(document, value, m.target_field_path, block_uid=m.block_uid)
    if seed_title and not document.get("title"):
        document = merge_value(document, f"Entry {row_index + 1}", "title")
    return RowBuild(document=document)


def has_new_fields(existing: Dict, document: Dict) -> bool:
    for key, value in document.items():
        if value is None or value == "":
            continue
        if existing.get(key) != value:
            return True
    return False


class EntryImporter:
    def __init__(
        self,
        repository: EntryRepository,
        mappings: List[FieldMapping],
        publish_environment: Optional[str] = None,
        row_delay: float = 0.1,
        references: Optional[ReferenceResolver] = None,
        log: Optional[ImportLog] = None,
        seed_title: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.repository = repository
        self.mappings = list(mappings)
        self.publish_environment = publish_environment
        self.row_delay = row_delay
        self.references = references
        self.log = log if log is not None else ImportLog()
        self.seed_title = seed_title
        self.sleep = sleep
        self._stop = threading.Event()

    def stop(self) -> None:
        """Ask the run to end before the next row starts."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def _row_warnings(self, row_index: int) -> List[str]:
        return [
            f"{e.field_path}: {e.message}" if e.field_path else e.message
            for e in self.log.warnings(row_index)
        ]

    def _publish(self, result: ImportResult) -> None:
        if not self.publish_environment or not result.entry_uid:
            return
        try:
            self.repository.publish(result.entry_uid, self.publish_environment)
            result.published = True
            self.log.success(f"Entry {result.entry_uid} published to {self.publish_environment}", row_index=result.row_index)
        except Exception as e:
            result.error = f"Publish failed: {e}"
            self.log.error(result.error, row_index=result.row_index)

    def import_row(self, row: Dict[str, str], row_index: int) -> ImportResult:
        try:
            built = build_entry(
                row,
                self.mappings,
                row_index,
                log=self.log,
                references=self.references,
                seed_title=self.seed_title,
            )
        except Exception as e:
            error = f"Could not build entry: {e}"
            self.log.error(error, row_index=row_index)
            return ImportResult(row_index=row_index, success=False, action=FAILED, error=error,
                                warnings=self._row_warnings(row_index))
        if built.missing_required:
            error = f"Missing required field: {built.missing_required}"
            self.log.error(error, row_index=row_index, field_path=built.missing_required)
            return ImportResult(row_index=row_index, success=False, action=FAILED, error=error,
                                warnings=self._row_warnings(row_index))

        document = built.document
        self.log.info("Entry data built", row_index=row_index, details=document)
        try:
            title = document.get("title")
            existing = self.repository.find_by_title(title) if isinstance(title, str) and title else None
            if existing and existing.get("uid"):
                uid = existing["uid"]
                if not has_new_fields(existing, document):
                    self.log.info(f"Entry {uid} exists with no new fields; skipped", row_index=row_index)
                    return ImportResult(row_index=row_index, success=True, action=SKIPPED, entry_uid=uid,
                                        warnings=self._row_warnings(row_index))
                self.repository.update(uid, document)
                result = ImportResult(row_index=row_index, success=True, action=UPDATED, entry_uid=uid)
                self.log.success(f"Entry {uid} updated", row_index=row_index)
            else:
                uid = self.repository.create(document)
                result = ImportResult(row_index=row_index, success=True, action=CREATED, entry_uid=uid)
                self.log.success(f"Entry created with UID {uid}", row_index=row_index)
        except Exception as e:
            self.log.error(f"Import failed: {e}", row_index=row_index)
            return ImportResult(row_index=row_index, success=False, action=FAILED, error=str(e),
                                warnings=self._row_warnings(row_index))

        self._publish(result)
        result.warnings = self._row_warnings(row_index)
        return result

    def run(self, rows: List[Dict[str, str]], on_result: Optional[Callable[[ImportResult], None]] = None) -> ImportSummary:
        summary = ImportSummary(total_rows=len(rows))
        mapped = sum(1 for m in self.mappings if not m.skipped)
        self.log.info(f"Starting import of {len(rows)} rows with {mapped} mapped fields")
        for i, row in enumerate(rows):
            if self.stopping:
                summary.stopped = True
                self.log.warning(f"Import stopped by user at row {i + 1}/{len(rows)}")
                break
            result = self.import_row(row, i)
            summary.results.append(result)
            if on_result is not None:
                on_result(result)
            if self.row_delay > 0 and i < len(rows) - 1:
                self.sleep(self.row_delay)
        level = "warning" if summary.failed else "success"
        self.log.add(
            level,
            "Import completed: {created} created, {updated} updated, {skipped} skipped, "
            "{failed} failed, {published} published".format(**summary.counters()),
        )
        return summary
