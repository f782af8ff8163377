from __future__ import annotations
import json
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from .errors import ContentstackError, SchemaResolutionError
from .references import CachedReferenceResolver, ReferenceCache
from .schema import SchemaField, load_schema


logger = logging.getLogger(__name__)

DEFAULT_HOST = "api.contentstack.io"


@dataclass
class ContentstackConfig:
    api_key: str
    management_token: str
    host: str = DEFAULT_HOST
    content_type: str = ""
    environment: str = ""
    locale: str = "en-us"

    def __post_init__(self) -> None:
        host = (self.host or DEFAULT_HOST).strip()
        for prefix in ("https://", "http://"):
            if host.startswith(prefix):
                host = host[len(prefix):]
        self.host = host.rstrip("/")

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/v3"


def build_session(cfg: ContentstackConfig) -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "api_key": cfg.api_key,
            "authorization": cfg.management_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "csv-contentstack/1.0",
        }
    )
    return s


def _send(session: requests.Session, method: str, url: str, payload: Optional[Dict] = None, params: Optional[Dict] = None) -> requests.Response:
    backoff = 1.0
    while True:
        data = json.dumps(payload) if payload is not None else None
        resp = session.request(method, url, data=data, params=params)
        if resp.status_code == 429:
            try:
                retry_after = float(resp.headers.get("Retry-After", backoff))
            except ValueError:
                # HTTP-date form
                retry_after = backoff
            logger.info("rate limited on %s %s, sleeping %.1fs", method, url, retry_after)
            time.sleep(retry_after)
            backoff = min(backoff * 2, 10.0)
            continue
        return resp


def _rest_get(session: requests.Session, url: str, params: Optional[Dict] = None) -> requests.Response:
    return _send(session, "GET", url, params=params)


def _rest_post(session: requests.Session, url: str, payload: Dict) -> requests.Response:
    return _send(session, "POST", url, payload=payload)


def _check(resp: requests.Response) -> Dict:
    if not resp.ok:
        try:
            body = resp.json()
            detail = body.get("error_message") or body.get("errors") or body
        except ValueError:
            detail = resp.text
        raise ContentstackError(resp.status_code, str(detail), response=resp)
    return resp.json() or {}


def get_content_type(session: requests.Session, cfg: ContentstackConfig, content_type: Optional[str] = None) -> Dict:
    url = f"{cfg.base_url}/content_types/{content_type or cfg.content_type}"
    return _check(_rest_get(session, url)).get("content_type") or {}


def get_global_field(session: requests.Session, cfg: ContentstackConfig, uid: str) -> Dict:
    url = f"{cfg.base_url}/global_fields/{uid}"
    return _check(_rest_get(session, url)).get("global_field") or {}


def find_entries(session: requests.Session, cfg: ContentstackConfig, query: Dict, content_type: Optional[str] = None, limit: int = 1) -> List[Dict]:
    url = f"{cfg.base_url}/content_types/{content_type or cfg.content_type}/entries"
    params = {"query": json.dumps(query), "locale": cfg.locale, "limit": limit}
    return _check(_rest_get(session, url, params=params)).get("entries") or []


def get_entry(session: requests.Session, cfg: ContentstackConfig, uid: str) -> Dict:
    url = f"{cfg.base_url}/content_types/{cfg.content_type}/entries/{uid}"
    return _check(_rest_get(session, url, params={"locale": cfg.locale})).get("entry") or {}


def create_entry(session: requests.Session, cfg: ContentstackConfig, entry: Dict) -> Dict:
    url = f"{cfg.base_url}/content_types/{cfg.content_type}/entries"
    resp = _send(session, "POST", url, payload={"entry": entry}, params={"locale": cfg.locale})
    return _check(resp).get("entry") or {}


def update_entry(session: requests.Session, cfg: ContentstackConfig, uid: str, entry: Dict) -> Dict:
    url = f"{cfg.base_url}/content_types/{cfg.content_type}/entries/{uid}"
    resp = _send(session, "PUT", url, payload={"entry": entry}, params={"locale": cfg.locale})
    return _check(resp).get("entry") or {}


def publish_entry(session: requests.Session, cfg: ContentstackConfig, uid: str, environment: str) -> Dict:
    url = f"{cfg.base_url}/content_types/{cfg.content_type}/entries/{uid}/publish"
    payload = {"entry": {"environments": [environment], "locales": [cfg.locale]}, "locale": cfg.locale}
    return _check(_rest_post(session, url, payload))


def fetch_schema(session: requests.Session, cfg: ContentstackConfig) -> List[SchemaField]:
    """Fetch and parse the configured content type's field schema."""
    return load_schema(get_content_type(session, cfg).get("schema") or [])


class ContentstackSchemaResolver:
    """Resolve global field schemas over the management API."""

    STATUS_KINDS = {401: "unauthorized", 403: "unauthorized", 404: "not_found", 422: "invalid_credentials"}

    def __init__(self, session: requests.Session, cfg: ContentstackConfig):
        self.session = session
        self.cfg = cfg

    def __call__(self, global_field_uid: str) -> List[SchemaField]:
        try:
            data = get_global_field(self.session, self.cfg, global_field_uid)
        except ContentstackError as e:
            raise SchemaResolutionError(self.STATUS_KINDS.get(e.status_code, "network_error"), e.message) from e
        except requests.RequestException as e:
            raise SchemaResolutionError("network_error", str(e)) from e
        fields = load_schema(data.get("schema") or [])
        logger.info("resolved global field %s (%d fields)", global_field_uid, len(fields))
        return fields


def make_reference_resolver(session: requests.Session, cfg: ContentstackConfig, cache: Optional[ReferenceCache] = None) -> CachedReferenceResolver:
    """Resolve reference cells by entry title in the referenced content type."""

    def lookup(content_type: str, key: str) -> Optional[str]:
        entries = find_entries(session, cfg, {"title": key}, content_type=content_type)
        return entries[0].get("uid") if entries else None

    return CachedReferenceResolver(lookup, cache=cache)


class ContentstackEntryRepository:
    def __init__(self, session: requests.Session, cfg: ContentstackConfig):
        self.session = session
        self.cfg = cfg

    def find_by_title(self, title: str) -> Optional[Dict]:
        entries = find_entries(self.session, self.cfg, {"title": title})
        return entries[0] if entries else None

    def create(self, document: Dict) -> str:
        return create_entry(self.session, self.cfg, document).get("uid", "")

    def update(self, uid: str, document: Dict) -> None:
        update_entry(self.session, self.cfg, uid, document)

    def publish(self, uid: str, environment: str) -> None:
        publish_entry(self.session, self.cfg, uid, environment)
