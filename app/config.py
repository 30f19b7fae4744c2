# app/config.py
import os
from dataclasses import dataclass
from typing import Mapping, Optional

GITHUB_API = "https://api.github.com"


def _split_origins(raw):
    return tuple(o.strip() for o in (raw or "").split(",") if o.strip())


@dataclass(frozen=True)
class ProxyConfig:
    repo: str = ""
    token: str = ""
    allowed_origins: tuple = ()
    api_base: str = GITHUB_API
    default_branch: str = "main"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProxyConfig":
        """Read GITHUB_REPO, GITHUB_PAT (or GITHUB_TOKEN) and ALLOWED_ORIGINS.

        Missing values are left empty; requests that need them fail with a 500.
        """
        env = os.environ if environ is None else environ
        return cls(
            repo=(env.get("GITHUB_REPO") or "").strip(),
            token=(env.get("GITHUB_PAT") or env.get("GITHUB_TOKEN") or "").strip(),
            allowed_origins=_split_origins(env.get("ALLOWED_ORIGINS")),
            api_base=(env.get("GITHUB_API") or GITHUB_API).rstrip("/"),
            default_branch=(env.get("GITHUB_BRANCH") or "main").strip() or "main",
        )

    @property
    def has_repo(self) -> bool:
        return bool(self.repo)

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def origin_allowed(self, origin: Optional[str]) -> bool:
        if not origin or not self.allowed_origins:
            return True
        return origin in self.allowed_origins
