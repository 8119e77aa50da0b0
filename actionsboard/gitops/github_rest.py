from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

import httpx


class GitHubApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubRateLimitError(GitHubApiError):
    """The API refused the call because the token (or IP) ran out of quota."""


def _is_rate_limited(r: httpx.Response) -> bool:
    if r.status_code == 429:
        return True
    if r.status_code != 403:
        return False
    if r.headers.get("x-ratelimit-remaining") == "0":
        return True
    try:
        message = str((r.json() or {}).get("message") or "")
    except ValueError:
        message = r.text or ""
    return "rate limit" in message.lower()


def _raise_for_status(r: httpx.Response) -> None:
    if r.is_success:
        return
    try:
        message = str((r.json() or {}).get("message") or r.reason_phrase)
    except ValueError:
        message = r.reason_phrase or f"HTTP {r.status_code}"
    if _is_rate_limited(r):
        raise GitHubRateLimitError(f"GitHub rate limit exceeded: {message}", status_code=r.status_code)
    raise GitHubApiError(f"GitHub API error {r.status_code}: {message}", status_code=r.status_code)


@dataclass(frozen=True)
class GitHubActionsClient:
    """
    Minimal GitHub Actions REST wrapper.

    Supports:
    - list workflow runs for a repository (newest first)

    Notes:
    - Works anonymously when no token is given (60 requests/hour per IP).
    - Mockable in tests via `transport` (httpx.MockTransport).
    """

    repo: str  # owner/name
    token: str | None = None
    api_base: str = "https://api.github.com"
    timeout_s: float = 15.0
    transport: httpx.AsyncBaseTransport | None = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport)

    async def list_workflow_runs(self, *, per_page: int = 10) -> Dict[str, Any]:
        """Raw `GET /repos/{owner}/{repo}/actions/runs` body ({"total_count", "workflow_runs"})."""
        url = f"{self.api_base.rstrip('/')}/repos/{self.repo}/actions/runs"
        try:
            async with self._client() as c:
                r = await c.get(url, headers=self._headers(), params={"per_page": int(per_page)})
        except httpx.HTTPError as e:
            raise GitHubApiError(f"GitHub request failed: {e}") from e
        _raise_for_status(r)
        data = r.json() or {}
        if not isinstance(data, dict):
            raise GitHubApiError("unexpected workflow runs payload", status_code=r.status_code)
        return data

    async def recent_runs(self, *, per_page: int = 5) -> List[Dict[str, Any]]:
        data = await self.list_workflow_runs(per_page=per_page)
        runs = data.get("workflow_runs") or []
        return [run for run in runs if isinstance(run, dict)]
