# app/proxy.py
"""Request dispatch for the GitHub file proxy.

`handle` maps one inbound request onto at most two upstream calls and always
returns a `ProxyResponse`; nothing raised inside an operation escapes it.

Routes (matched on path suffix):
- GET  .../raw?path=...              -> {status, elapsed_ms, content}
- POST .../put    {path, contentBase64, message?, branch?} -> {status, elapsed_ms, result}
- POST .../delete {path, message?, branch?}               -> {status, elapsed_ms, result}
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import ProxyConfig
from .github_ops import GitHubContents, UpstreamResult

logger = logging.getLogger(__name__)

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "Content-Type"


@dataclass
class ProxyRequest:
    method: str
    path: str
    query: dict = field(default_factory=dict)
    body: bytes = b""
    origin: Optional[str] = None


@dataclass
class ProxyResponse:
    status: int
    payload: Optional[dict] = None
    headers: dict = field(default_factory=dict)


@dataclass
class ProxyError(Exception):
    status_code: int
    payload: dict


def cors_headers(config: ProxyConfig, origin: Optional[str]) -> dict:
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
    }
    if origin and config.allowed_origins and config.origin_allowed(origin):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    return headers


def parse_body(raw):
    """Decode a JSON object body; anything else counts as no body."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _str_field(body, key):
    value = body.get(key)
    return value if isinstance(value, str) and value else None


def _envelope(r: UpstreamResult, key, value) -> ProxyResponse:
    payload = {"status": r.status, "elapsed_ms": r.elapsed_ms}
    if r.rate is not None:
        payload["rate"] = r.rate
    payload[key] = value
    return ProxyResponse(status=200 if r.ok else r.status, payload=payload)


def _require_repo(config):
    if not config.has_repo:
        raise ProxyError(500, {"error": "GITHUB_REPO not configured"})


def _require_write(config):
    _require_repo(config)
    if not config.has_token:
        raise ProxyError(500, {"error": "GITHUB_PAT not configured"})


def raw_read(req: ProxyRequest, config: ProxyConfig, client: GitHubContents) -> ProxyResponse:
    path = req.query.get("path")
    if not path:
        raise ProxyError(400, {"error": "missing path"})
    _require_repo(config)

    r = client.get_raw(path, ref=req.query.get("ref") or None)
    logger.info("raw %s -> %s (%dms)", path, r.status, r.elapsed_ms)
    return _envelope(r, "content", r.text)


def put(req: ProxyRequest, config: ProxyConfig, client: GitHubContents) -> ProxyResponse:
    body = parse_body(req.body)
    path = _str_field(body, "path")
    content = _str_field(body, "contentBase64")
    if not path or not content:
        raise ProxyError(400, {"error": "path & contentBase64 required"})
    _require_write(config)

    branch = _str_field(body, "branch") or config.default_branch
    message = _str_field(body, "message") or f"update {path} via proxy"

    # A missing sha means create; the upstream decides.
    sha = None
    try:
        meta = client.get_meta(path, branch)
    except Exception as e:
        logger.warning("meta lookup for %s failed, writing without sha: %s", path, e)
    else:
        if meta.found:
            sha = meta.sha

    r = client.put_file(path, content, message, branch, sha=sha)
    logger.info("put %s@%s sha=%s -> %s (%dms)", path, branch, sha, r.status, r.elapsed_ms)
    return _envelope(r, "result", r.json_or_raw())


def delete(req: ProxyRequest, config: ProxyConfig, client: GitHubContents) -> ProxyResponse:
    body = parse_body(req.body)
    path = _str_field(body, "path")
    if not path:
        raise ProxyError(400, {"error": "path required"})
    _require_write(config)

    branch = _str_field(body, "branch") or config.default_branch
    message = _str_field(body, "message") or f"delete {path} via proxy"

    meta = client.get_meta(path, branch)
    if not meta.found:
        raise ProxyError(meta.status, {"error": "meta fetch failed", "status": meta.status, "text": meta.text})
    if not meta.sha:
        raise ProxyError(500, {"error": "no sha on file"})

    r = client.delete_file(path, message, meta.sha, branch)
    logger.info("delete %s@%s -> %s (%dms)", path, branch, r.status, r.elapsed_ms)
    return _envelope(r, "result", r.json_or_raw())


ROUTES = (
    ("/raw", "GET", raw_read),
    ("/put", "POST", put),
    ("/delete", "POST", delete),
)


def route(method, path):
    path = path.rstrip("/")
    for suffix, verb, op in ROUTES:
        if path.endswith(suffix) and method == verb:
            return op
    return None


def handle(req: ProxyRequest, config: ProxyConfig, client: GitHubContents) -> ProxyResponse:
    method = req.method.upper()
    cors = cors_headers(config, req.origin)

    if method == "OPTIONS":
        return ProxyResponse(status=204, headers=cors)

    if not config.origin_allowed(req.origin):
        logger.warning("rejected origin %s", req.origin)
        return ProxyResponse(status=403, payload={"error": "origin not allowed"}, headers=cors)

    op = route(method, req.path)
    if op is None:
        return ProxyResponse(status=404, payload={"error": "use /api/raw, /api/put, or /api/delete"}, headers=cors)

    try:
        resp = op(req, config, client)
    except ProxyError as e:
        resp = ProxyResponse(status=e.status_code, payload=e.payload)
    except Exception as e:
        logger.exception("%s %s failed", method, req.path)
        resp = ProxyResponse(status=500, payload={"error": str(e) or type(e).__name__})
    resp.headers.update(cors)
    return resp
