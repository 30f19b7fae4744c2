import base64
import hashlib
import json
from urllib.parse import unquote

import pytest
from fastapi.testclient import TestClient

from app.config import ProxyConfig
from app.github_ops import GitHubContents
from app.main import create_app


class FakeResponse:
    def __init__(self, status_code, text="", headers=None):
        self.status_code = status_code
        self.text = text
        self.headers = headers or {}


class FakeGitHub:
    """In-memory stand-in for the contents endpoints of one repository.

    Files are keyed by (path, branch). Every request is recorded in `calls`;
    `queue` forces the next response for a method (a FakeResponse or an exception).
    """

    def __init__(self, rate_headers=None):
        self.files = {}
        self.calls = []
        self.queued = {}
        self.rate_headers = rate_headers or {}
        self._n = 0

    def queue(self, method, response):
        self.queued.setdefault(method, []).append(response)

    def seed(self, path, text, branch="main"):
        sha = self._new_sha(path)
        self.files[(path, branch)] = (base64.b64encode(text.encode()).decode(), sha)
        return sha

    def calls_for(self, method):
        return [c for c in self.calls if c["method"] == method]

    def _new_sha(self, path):
        self._n += 1
        return hashlib.sha1(f"{path}:{self._n}".encode()).hexdigest()

    def _reply(self, status, body):
        text = body if isinstance(body, str) else json.dumps(body)
        return FakeResponse(status, text, dict(self.rate_headers))

    def request(self, method, url, headers=None, params=None, json=None, **kwargs):
        path = unquote(url.split("/contents/", 1)[1])
        self.calls.append({"method": method, "path": path, "headers": headers, "params": params, "json": json})
        pending = self.queued.get(method)
        if pending:
            r = pending.pop(0)
            if isinstance(r, Exception):
                raise r
            return r

        branch = (params or {}).get("ref") or (json or {}).get("branch") or "main"
        current = self.files.get((path, branch))

        if method == "GET":
            if current is None:
                return self._reply(404, {"message": "Not Found"})
            if headers.get("Accept") == "application/vnd.github.v3.raw":
                return self._reply(200, base64.b64decode(current[0]).decode())
            return self._reply(200, {"path": path, "sha": current[1], "content": current[0]})

        if method == "PUT":
            sha = json.get("sha")
            if current is not None and sha is None:
                return self._reply(422, {"message": "\"sha\" wasn't supplied."})
            if current is not None and sha != current[1]:
                return self._reply(409, {"message": "sha does not match"})
            new_sha = self._new_sha(path)
            self.files[(path, branch)] = (json["content"], new_sha)
            return self._reply(200 if current else 201, {"content": {"path": path, "sha": new_sha}, "commit": {"message": json["message"]}})

        if method == "DELETE":
            if current is None:
                return self._reply(404, {"message": "Not Found"})
            if json.get("sha") != current[1]:
                return self._reply(409, {"message": "sha does not match"})
            del self.files[(path, branch)]
            return self._reply(200, {"content": None, "commit": {"message": json["message"]}})

        return self._reply(405, {"message": "Method Not Allowed"})


@pytest.fixture
def config():
    return ProxyConfig(repo="octo/site", token="pat-123")


@pytest.fixture
def fake():
    return FakeGitHub()


@pytest.fixture
def github(config, fake):
    return GitHubContents(config, session=fake)


@pytest.fixture
def client(config, github):
    return TestClient(create_app(config, github))
