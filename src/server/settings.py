from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Dict


logger = logging.getLogger(__name__)

SETTINGS_PATH: Path | None = None

# settings key -> environment variable consulted while the key is empty
ENV_FALLBACKS = {
    "contentstack_host": "CONTENTSTACK_HOST",
    "contentstack_api_key": "CONTENTSTACK_API_KEY",
    "contentstack_management_token": "CONTENTSTACK_MANAGEMENT_TOKEN",
    "contentstack_content_type": "CONTENTSTACK_CONTENT_TYPE",
    "contentstack_environment": "CONTENTSTACK_ENVIRONMENT",
    "contentstack_locale": "CONTENTSTACK_LOCALE",
}


def init_settings(path: Path) -> None:
    global SETTINGS_PATH
    SETTINGS_PATH = path
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        save_settings(default_settings())


def default_settings() -> Dict:
    return {
        "contentstack_host": "",
        "contentstack_api_key": "",
        "contentstack_management_token": "",
        "contentstack_content_type": "",
        "contentstack_environment": "",
        "contentstack_locale": "",
        "publish_default": False,
        "row_delay_default": 0.1,
        "resolve_references_default": False,
    }


def get_settings() -> Dict:
    assert SETTINGS_PATH is not None
    try:
        data = json.loads(SETTINGS_PATH.read_text())
    except (OSError, ValueError) as e:
        logger.warning("settings unreadable (%s), using defaults", e)
        return default_settings()
    base = default_settings()
    base.update(data or {})
    return base


def effective_settings() -> Dict:
    """Stored settings with empty connection values filled from the environment."""
    s = get_settings()
    for key, env in ENV_FALLBACKS.items():
        if not str(s.get(key) or "").strip():
            s[key] = os.getenv(env, "")
    return s


def save_settings(data: Dict) -> None:
    assert SETTINGS_PATH is not None
    SETTINGS_PATH.write_text(json.dumps(data, indent=2))


def public_settings(data: Dict) -> Dict:
    """Settings safe to return over the API (credentials masked)."""
    out = dict(data)
    for key in ("contentstack_api_key", "contentstack_management_token"):
        if out.get(key):
            out[key] = "***" + str(out[key])[-4:]
    return out
