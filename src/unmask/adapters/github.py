"""GitHub account scanner over the public REST API."""

from __future__ import annotations

import asyncio
import re
from collections import Counter
from typing import Any, Mapping

import structlog

from ..core.errors import NotAccessibleError, PreconditionError, ProcessorError
from .http import HttpError, build_url, request_json

USERNAME_RE = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/(?P<user>[A-Za-z0-9](?:[A-Za-z0-9-]{0,38}))/?", re.IGNORECASE)
BARE_USERNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$")


def parse_username(url: str) -> str:
    url = (url or "").strip()
    match = USERNAME_RE.match(url)
    if match:
        return match.group("user")
    if BARE_USERNAME_RE.match(url):
        return url
    raise PreconditionError(f"Not a GitHub profile URL: {url!r}")


def summarize_repositories(repos: list[dict[str, Any]]) -> dict[str, Any]:
    own = [repo for repo in repos if not repo.get("fork")]
    languages = Counter(repo["language"] for repo in own if repo.get("language"))
    return {
        "total": len(repos),
        "own": len(own),
        "forked": len(repos) - len(own),
        "total_stars": sum(repo.get("stargazers_count") or 0 for repo in own),
        "total_forks": sum(repo.get("forks_count") or 0 for repo in own),
        "languages": dict(languages.most_common()),
        "last_push": max((repo.get("pushed_at") or "" for repo in repos), default="") or None,
    }


class GitHubClient:
    """Fetch profile, repositories and (optionally) organisations for one account."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = "https://api.github.com",
        max_repos: int = 50,
        include_organizations: bool = True,
        timeout: float = 30.0,
    ):
        self._token = token
        self._base_url = base_url
        self._max_repos = max_repos
        self._include_organizations = include_organizations
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)

    async def process(self, url: str, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        username = parse_username(url)
        return await asyncio.to_thread(self.fetch_account, username, dict(options or {}))

    def _get(self, path: str, **query: Any) -> Any:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return request_json(build_url(self._base_url, path, query), headers=headers, timeout=self._timeout)

    def fetch_account(self, username: str, options: dict[str, Any] | None = None) -> dict[str, Any]:
        options = options or {}
        max_repos = int(options.get("max_repos", self._max_repos))
        include_orgs = bool(options.get("include_organizations", self._include_organizations))

        try:
            profile = self._get(f"users/{username}")
        except HttpError as exc:
            if exc.status == 404:
                raise NotAccessibleError(f"GitHub user {username!r} not found") from exc
            raise ProcessorError(f"GitHub profile request failed: {exc}") from exc
        if not isinstance(profile, dict):
            raise ProcessorError("GitHub returned an unexpected profile payload")

        repos = self._get(
            f"users/{username}/repos",
            per_page=min(max_repos, 100),
            sort="updated",
            type="owner",
        ) or []
        repos = list(repos)[:max_repos]

        organizations: list[str] = []
        if include_orgs:
            organizations = [org.get("login", "") for org in self._get(f"users/{username}/orgs") or []]

        payload = {
            "username": profile.get("login") or username,
            "name": profile.get("name"),
            "email": profile.get("email"),
            "bio": profile.get("bio"),
            "company": profile.get("company"),
            "location": profile.get("location"),
            "blog": profile.get("blog") or None,
            "profile_url": profile.get("html_url"),
            "public_repos": profile.get("public_repos") or 0,
            "followers": profile.get("followers") or 0,
            "following": profile.get("following") or 0,
            "account_created_at": profile.get("created_at"),
            "repositories": [
                {
                    "name": repo.get("name"),
                    "description": repo.get("description"),
                    "language": repo.get("language"),
                    "stars": repo.get("stargazers_count") or 0,
                    "forks": repo.get("forks_count") or 0,
                    "fork": bool(repo.get("fork")),
                    "pushed_at": repo.get("pushed_at"),
                }
                for repo in repos
            ],
            "repository_summary": summarize_repositories(repos),
            "organizations": organizations,
        }
        self._logger.info(
            "github.fetched",
            username=payload["username"],
            repositories=len(repos),
            organizations=len(organizations),
        )
        return payload


__all__ = ["GitHubClient", "parse_username", "summarize_repositories"]
