from __future__ import annotations
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import requests
from fastapi import BackgroundTasks, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from csv_contentstack import contentstack_client as cc
from csv_contentstack.flatten import FlattenResult, flatten_fields
from csv_contentstack.importer import EntryImporter
from csv_contentstack.io import read_any_rows, write_results_csv
from csv_contentstack.log import ImportLog
from csv_contentstack.matching import apply_overrides, build_mappings
from csv_contentstack.references import ReferenceCache
from csv_contentstack.schema import load_schema_file
from . import db
from . import settings as app_settings


logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[2]
DATA = Path(os.getenv("CSV_CONTENTSTACK_DATA_DIR", str(ROOT / "data")))
UPLOADS = DATA / "uploads"
RESULTS = DATA / "results"
UPLOADS.mkdir(parents=True, exist_ok=True)
RESULTS.mkdir(parents=True, exist_ok=True)

app = FastAPI(title="CSV → Contentstack API", version="0.1.0")
db.init_db(DATA / "app.sqlite3")
app_settings.init_settings(DATA / "settings.json")


class JobStatus(str):
    queued = "queued"
    running = "running"
    stopping = "stopping"
    stopped = "stopped"
    succeeded = "succeeded"
    failed = "failed"


class Job(BaseModel):
    id: str
    kind: str
    status: str
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    params: Dict
    result_path: Optional[str] = None
    error: Optional[str] = None
    counters: Dict = {}
    results: List[Dict] = []


class FileInfo(BaseModel):
    id: str
    name: str
    kind: str
    path: str
    size: int
    created_at: datetime


JOBS: Dict[str, Job] = {}
IMPORTERS: Dict[str, EntryImporter] = {}
LOGS: Dict[str, ImportLog] = {}
# Logs stay in memory for the most recent jobs only
MAX_JOB_LOGS = 50


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/files", response_model=FileInfo)
async def upload_file(file: UploadFile = File(...)):
    name = file.filename or "upload"
    suffix = Path(name).suffix.lower()
    if suffix == ".json":
        kind = "schema"
    elif suffix in (".csv", ".xlsx"):
        kind = "csv"
    else:
        raise HTTPException(400, "Upload a .csv/.xlsx data file or a .json content type schema")
    file_id = uuid.uuid4().hex
    dest = UPLOADS / f"{file_id}{suffix}"
    content = await file.read()
    dest.write_bytes(content)
    info = FileInfo(id=file_id, name=name, kind=kind, path=str(dest), size=len(content), created_at=datetime.utcnow())
    db.add_file(info.model_dump())
    return info


@app.get("/files", response_model=List[FileInfo])
def list_files(kind: Optional[str] = None) -> List[FileInfo]:
    return [FileInfo(**f) for f in db.list_files(kind)]


def _file(file_id: str, kind: str) -> Dict:
    f = db.get_file(file_id)
    if not f or f.get("kind") != kind:
        raise HTTPException(404, f"{kind} file_id not found")
    return f


def _get_contentstack_cfg(required: bool = True) -> Optional[cc.ContentstackConfig]:
    s = app_settings.effective_settings()
    api_key = s["contentstack_api_key"].strip()
    token = s["contentstack_management_token"].strip()
    content_type = s["contentstack_content_type"].strip()
    if not api_key or not token or not content_type:
        if required:
            raise HTTPException(500, "Contentstack credentials missing. Set them in settings or as environment variables.")
        return None
    return cc.ContentstackConfig(
        api_key=api_key,
        management_token=token,
        host=s["contentstack_host"],
        content_type=content_type,
        environment=s["contentstack_environment"],
        locale=s["contentstack_locale"] or "en-us",
    )


def _make_session(cfg: cc.ContentstackConfig) -> requests.Session:
    return cc.build_session(cfg)


def _make_repository(session: requests.Session, cfg: cc.ContentstackConfig):
    return cc.ContentstackEntryRepository(session, cfg)


def _load_fields(schema_file_id: Optional[str], log: ImportLog) -> FlattenResult:
    cfg = _get_contentstack_cfg(required=not schema_file_id)
    session = _make_session(cfg) if cfg is not None else None
    if schema_file_id:
        schema = load_schema_file(Path(_file(schema_file_id, "schema")["path"]))
    else:
        try:
            schema = cc.fetch_schema(session, cfg)
        except requests.RequestException as e:
            raise HTTPException(502, f"Could not fetch content type schema: {e}")
    resolver = cc.ContentstackSchemaResolver(session, cfg) if session is not None else None
    return flatten_fields(schema, resolver=resolver, log=log)


class MappingRequest(BaseModel):
    file_id: str
    schema_file_id: Optional[str] = None
    overrides: Dict[str, str] = {}


@app.post("/mappings/preview")
def preview_mapping(req: MappingRequest) -> Dict:
    data = read_any_rows(Path(_file(req.file_id, "csv")["path"]))
    log = ImportLog()
    flat = _load_fields(req.schema_file_id, log)
    mappings = build_mappings(data.headers, flat.fields)
    try:
        mappings = apply_overrides(mappings, req.overrides, flat.fields)
    except KeyError as e:
        raise HTTPException(400, str(e))
    return {
        "headers": data.headers,
        "rows": len(data.rows),
        "fields": [
            {
                "field_path": f.field_path,
                "display_name": f.display_name,
                "data_type": f.data_type,
                "mandatory": f.mandatory,
            }
            for f in flat.fields
        ],
        "mappings": [
            {
                "csv_column": m.csv_column,
                "target_field_path": m.target_field_path,
                "field_type": m.field_type,
                "is_required": m.is_required,
            }
            for m in mappings
        ],
        "warnings": flat.warnings,
    }


class ImportRequest(BaseModel):
    file_id: str
    schema_file_id: Optional[str] = None
    overrides: Dict[str, str] = {}
    publish: bool = False
    environment: Optional[str] = None
    row_delay: Optional[float] = None
    resolve_references: Optional[bool] = None
    limit: int = 0


def _keep_log(job_id: str, log: ImportLog) -> None:
    LOGS[job_id] = log
    while len(LOGS) > MAX_JOB_LOGS:
        oldest = next(iter(LOGS))
        LOGS.pop(oldest)


@app.post("/jobs/import", response_model=Job)
def create_import_job(req: ImportRequest, bg: BackgroundTasks):
    csv_file = _file(req.file_id, "csv")
    cfg = _get_contentstack_cfg()
    s = app_settings.get_settings()
    environment = req.environment or cfg.environment
    if req.publish and not environment:
        raise HTTPException(400, "publish requires an environment")

    job_id = uuid.uuid4().hex
    job = Job(
        id=job_id,
        kind="import",
        status=JobStatus.queued,
        created_at=datetime.utcnow(),
        params=req.model_dump(),
    )
    JOBS[job_id] = job
    db.save_job(job.model_dump())

    log = ImportLog()
    _keep_log(job_id, log)
    session = _make_session(cfg)
    resolve_refs = req.resolve_references if req.resolve_references is not None else bool(s.get("resolve_references_default"))
    importer = EntryImporter(
        repository=_make_repository(session, cfg),
        mappings=[],
        publish_environment=environment if req.publish else None,
        row_delay=req.row_delay if req.row_delay is not None else float(s.get("row_delay_default", 0.1)),
        references=cc.make_reference_resolver(session, cfg, cache=ReferenceCache()) if resolve_refs else None,
        log=log,
    )
    IMPORTERS[job_id] = importer

    def run():
        j = JOBS[job_id]
        j.status = JobStatus.running
        j.started_at = datetime.utcnow()
        db.save_job(j.model_dump())
        try:
            data = read_any_rows(Path(csv_file["path"]))
            rows = data.rows[: req.limit] if req.limit > 0 else data.rows
            flat = _load_fields(req.schema_file_id, log)
            importer.mappings = apply_overrides(build_mappings(data.headers, flat.fields), req.overrides, flat.fields)

            def progress(result) -> None:
                row = result.to_dict()
                j.results.append(row)
                db.save_job_row(job_id, row)

            summary = importer.run(rows, on_result=progress)
            out = RESULTS / f"{job_id}.csv"
            write_results_csv(out, summary.results)
            j.counters = summary.counters()
            j.result_path = str(out)
            j.status = JobStatus.stopped if summary.stopped else JobStatus.succeeded
        except Exception as e:
            logger.exception("import job %s failed", job_id)
            j.status = JobStatus.failed
            j.error = str(e.detail) if isinstance(e, HTTPException) else str(e)
        finally:
            j.finished_at = datetime.utcnow()
            db.save_job(j.model_dump())
            IMPORTERS.pop(job_id, None)

    bg.add_task(run)
    return job


@app.get("/jobs", response_model=List[Job])
def list_jobs() -> List[Job]:
    return [Job(**j) for j in db.list_jobs()]


@app.get("/jobs/{job_id}", response_model=Job)
def get_job(job_id: str) -> Job:
    if job_id in JOBS:
        return JOBS[job_id]
    j = db.get_job(job_id)
    if j:
        return Job(**j)
    raise HTTPException(404, "job not found")


@app.post("/jobs/{job_id}/stop", response_model=Job)
def stop_job(job_id: str) -> Job:
    job = get_job(job_id)
    importer = IMPORTERS.get(job_id)
    if importer is None or job.status not in (JobStatus.queued, JobStatus.running):
        raise HTTPException(409, "job is not running")
    importer.stop()
    job.status = JobStatus.stopping
    return job


@app.get("/jobs/{job_id}/rows")
def get_job_rows(job_id: str, failed: bool = False) -> List[Dict]:
    get_job(job_id)
    return db.job_rows(job_id, failed_only=failed)


@app.get("/jobs/{job_id}/logs")
def get_job_logs(job_id: str, row: Optional[int] = None) -> List[Dict]:
    log = LOGS.get(job_id)
    if log is None:
        raise HTTPException(404, "no logs for job")
    entries = log.for_row(row - 1) if row else log.entries
    return [e.to_dict() for e in entries]


@app.get("/jobs/{job_id}/download")
def download_job(job_id: str):
    job = get_job(job_id)
    if job.status not in (JobStatus.succeeded, JobStatus.stopped) or not job.result_path:
        raise HTTPException(400, "job not completed or no result available")
    return FileResponse(path=job.result_path, filename=f"import_{job_id}.csv", media_type="text/csv")


@app.get("/settings")
def read_settings() -> Dict:
    return app_settings.public_settings(app_settings.get_settings())


class SettingsUpdate(BaseModel):
    contentstack_host: Optional[str] = None
    contentstack_api_key: Optional[str] = None
    contentstack_management_token: Optional[str] = None
    contentstack_content_type: Optional[str] = None
    contentstack_environment: Optional[str] = None
    contentstack_locale: Optional[str] = None
    publish_default: Optional[bool] = None
    row_delay_default: Optional[float] = None
    resolve_references_default: Optional[bool] = None


@app.post("/settings")
def update_settings(req: SettingsUpdate) -> Dict:
    cur = app_settings.get_settings()
    cur.update({k: v for k, v in req.model_dump().items() if v is not None})
    app_settings.save_settings(cur)
    return app_settings.public_settings(cur)


@app.post("/settings/test")
def test_contentstack() -> Dict:
    cfg = _get_contentstack_cfg()
    try:
        ct = cc.get_content_type(_make_session(cfg), cfg)
    except requests.RequestException as e:
        raise HTTPException(400, f"Contentstack connection failed: {e}")
    return {"ok": True, "content_type": ct.get("uid"), "title": ct.get("title"), "fields": len(ct.get("schema") or [])}
