# app/github_ops.py
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import requests

from .config import ProxyConfig

logger = logging.getLogger(__name__)

ACCEPT_JSON = "application/vnd.github.v3+json"
ACCEPT_RAW = "application/vnd.github.v3.raw"


@dataclass
class UpstreamResult:
    status: int
    text: str
    headers: dict = field(default_factory=dict)
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def rate(self) -> Optional[dict]:
        remaining = self.headers.get("x-ratelimit-remaining")
        reset = self.headers.get("x-ratelimit-reset")
        if remaining is None and reset is None:
            return None
        return {"remaining": remaining, "reset": reset}

    def json_or_raw(self):
        try:
            return json.loads(self.text)
        except (TypeError, ValueError):
            return {"raw": self.text}


@dataclass
class FileMeta:
    """Result of a metadata lookup; sha is None whenever it could not be read."""

    status: int
    sha: Optional[str] = None
    text: str = ""

    @property
    def found(self) -> bool:
        return 200 <= self.status < 300


def _sha_from(text):
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    sha = data.get("sha")
    return sha if isinstance(sha, str) and sha else None


class GitHubContents:
    """Thin wrapper over the GitHub Contents API for one configured repo."""

    def __init__(self, config: ProxyConfig, session=None):
        self.config = config
        # None: requests.request opens and closes a session per call.
        self.session = session

    def url(self, path):
        return f"{self.config.api_base}/repos/{self.config.repo}/contents/{quote(path, safe='/')}"

    def headers(self, accept=ACCEPT_JSON):
        h = {"Accept": accept}
        if self.config.token:
            h["Authorization"] = f"token {self.config.token}"
        return h

    def _call(self, method, path, accept=ACCEPT_JSON, params=None, body=None):
        t0 = time.monotonic()
        r = (self.session or requests).request(
            method,
            self.url(path),
            headers=self.headers(accept),
            params=params,
            json=body,
        )
        elapsed = int((time.monotonic() - t0) * 1000)
        headers = {k.lower(): v for k, v in (r.headers or {}).items()}
        logger.debug("%s %s -> %s in %dms", method, path, r.status_code, elapsed)
        return UpstreamResult(status=r.status_code, text=r.text, headers=headers, elapsed_ms=elapsed)

    def get_raw(self, path, ref=None) -> UpstreamResult:
        params = {"ref": ref} if ref else None
        return self._call("GET", path, accept=ACCEPT_RAW, params=params)

    def get_meta(self, path, branch) -> FileMeta:
        r = self._call("GET", path, params={"ref": branch})
        sha = _sha_from(r.text) if r.ok else None
        return FileMeta(status=r.status, sha=sha, text=r.text)

    def put_file(self, path, content_b64, message, branch, sha=None) -> UpstreamResult:
        data = {
            "message": message,
            "content": content_b64,
            "branch": branch,
        }
        if sha:
            data["sha"] = sha
        return self._call("PUT", path, body=data)

    def delete_file(self, path, message, sha, branch) -> UpstreamResult:
        return self._call("DELETE", path, body={"message": message, "sha": sha, "branch": branch})
