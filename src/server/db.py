from __future__ import annotations
import json
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional


DB_PATH: Optional[Path] = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    kind TEXT NOT NULL,
    path TEXT NOT NULL,
    size INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    started_at TEXT,
    finished_at TEXT,
    params TEXT NOT NULL,
    result_path TEXT,
    error TEXT,
    counters TEXT
);
CREATE TABLE IF NOT EXISTS job_rows (
    job_id TEXT NOT NULL,
    row_index INTEGER NOT NULL,
    action TEXT NOT NULL,
    success INTEGER NOT NULL,
    entry_uid TEXT,
    published INTEGER NOT NULL DEFAULT 0,
    error TEXT,
    warnings TEXT,
    PRIMARY KEY (job_id, row_index)
);
"""


def _connect() -> sqlite3.Connection:
    assert DB_PATH is not None
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path) -> None:
    global DB_PATH
    DB_PATH = db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with _connect() as conn:
        conn.executescript(SCHEMA)


def add_file(info: Dict) -> None:
    with _connect() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO files(id,name,kind,path,size,created_at) VALUES(?,?,?,?,?,?)",
            (info["id"], info["name"], info["kind"], info["path"], int(info["size"]), str(info["created_at"])),
        )


def get_file(file_id: str) -> Optional[Dict]:
    with _connect() as conn:
        r = conn.execute("SELECT * FROM files WHERE id=?", (file_id,)).fetchone()
    return dict(r) if r else None


def list_files(kind: Optional[str] = None) -> List[Dict]:
    with _connect() as conn:
        if kind:
            cur = conn.execute("SELECT * FROM files WHERE kind=? ORDER BY created_at DESC", (kind,))
        else:
            cur = conn.execute("SELECT * FROM files ORDER BY created_at DESC")
        return [dict(r) for r in cur.fetchall()]


def save_job(job: Dict) -> None:
    """Upsert the job header; per-row outcomes live in job_rows."""
    with _connect() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO jobs(id,kind,status,created_at,started_at,finished_at,params,result_path,error,counters)"
            " VALUES(?,?,?,?,?,?,?,?,?,?)",
            (
                job["id"], job["kind"], job["status"], str(job["created_at"]),
                str(job.get("started_at") or ""), str(job.get("finished_at") or ""),
                json.dumps(job.get("params") or {}), job.get("result_path"), job.get("error"),
                json.dumps(job.get("counters") or {}),
            ),
        )


def save_job_row(job_id: str, result: Dict) -> None:
    with _connect() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO job_rows(job_id,row_index,action,success,entry_uid,published,error,warnings)"
            " VALUES(?,?,?,?,?,?,?,?)",
            (
                job_id, int(result["row_index"]), result["action"], int(bool(result["success"])),
                result.get("entry_uid"), int(bool(result.get("published"))), result.get("error"),
                json.dumps(result.get("warnings") or []),
            ),
        )


def job_rows(job_id: str, failed_only: bool = False) -> List[Dict]:
    sql = "SELECT * FROM job_rows WHERE job_id=?"
    if failed_only:
        sql += " AND success=0"
    with _connect() as conn:
        rows = conn.execute(sql + " ORDER BY row_index", (job_id,)).fetchall()
    out = []
    for r in rows:
        d = dict(r)
        d.pop("job_id")
        d["success"] = bool(d["success"])
        d["published"] = bool(d["published"])
        d["warnings"] = json.loads(d["warnings"] or "[]")
        out.append(d)
    return out


def _job_from_row(r: sqlite3.Row, with_rows: bool) -> Dict:
    d = dict(r)
    d["params"] = json.loads(d["params"] or "{}")
    d["counters"] = json.loads(d["counters"] or "{}")
    # empty string marks "not yet"
    d["started_at"] = d["started_at"] or None
    d["finished_at"] = d["finished_at"] or None
    d["results"] = job_rows(d["id"]) if with_rows else []
    return d


def get_job(job_id: str) -> Optional[Dict]:
    with _connect() as conn:
        r = conn.execute("SELECT * FROM jobs WHERE id=?", (job_id,)).fetchone()
    return _job_from_row(r, with_rows=True) if r else None


def list_jobs() -> List[Dict]:
    with _connect() as conn:
        rows = conn.execute("SELECT * FROM jobs ORDER BY created_at DESC").fetchall()
    return [_job_from_row(r, with_rows=False) for r in rows]
