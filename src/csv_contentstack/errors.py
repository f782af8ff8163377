from __future__ import annotations
from typing import Optional

import requests


class ImporterError(Exception):
    """Base class for errors raised by the importer."""


# Short reasons shown next to a global field that could not be expanded
RESOLUTION_REASONS = {
    "not_found": "global field not found",
    "unauthorized": "unauthorized access",
    "invalid_credentials": "invalid credentials or field not accessible",
    "network_error": "network error",
    "no_config": "no config",
}


class SchemaResolutionError(ImporterError):
    def __init__(self, kind: str, detail: str = ""):
        self.kind = kind if kind in RESOLUTION_REASONS else "network_error"
        self.detail = detail
        super().__init__(f"{self.reason}: {detail}" if detail else self.reason)

    @property
    def reason(self) -> str:
        return RESOLUTION_REASONS.get(self.kind, "schema unavailable")


class ContentstackError(requests.HTTPError):
    """Non-2xx response from the Contentstack management API."""

    def __init__(self, status_code: int, message: str, response: Optional[requests.Response] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}", response=response)
