from typing import Optional

from fastapi import FastAPI

from . import github_router
from .config import ProxyConfig
from .github_ops import GitHubContents


def create_app(config: Optional[ProxyConfig] = None, client: Optional[GitHubContents] = None) -> FastAPI:
    config = config or ProxyConfig.from_env()
    app = FastAPI(title="GitHub Contents Proxy", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.github = client or GitHubContents(config)

    # CORS is answered by the proxy handler itself so every response,
    # including preflights and errors, carries the same headers.
    app.include_router(github_router.router)
    return app


app = create_app()
