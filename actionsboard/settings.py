from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ACTIONSBOARD_", env_file=".env", extra="ignore")

    # GitHub REST API (Actions)
    github_token: str | None = None  # anonymous works, but with a much lower rate limit
    github_owner: str = "utkarsh232005"
    github_repo: str = "CI-CD"
    github_api_base: str = "https://api.github.com"
    github_timeout_s: float = 15.0

    # Dashboard origins allowed by CORS. Comma-separated, e.g.
    #   ACTIONSBOARD_FRONTEND_URLS="http://localhost:5173,https://dash.example.com"
    frontend_urls: str = "http://localhost:5173"

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    # Workflow change detector
    poller_enabled: bool = True
    poller_interval_s: float = 30.0
    poller_per_page: int = 5
    # Bound on remembered workflow runs (oldest evicted first).
    snapshot_max_entries: int = 500

    # Page size for GET /api/github/workflows
    workflows_per_page: int = 10

    # Broadcast channel
    recent_events_max: int = 200
    subscriber_queue_size: int = 100

    # Optional JSONL trail of every broadcast event. Disabled when unset.
    audit_log_path: str | None = None

    def allowed_origins(self) -> List[str]:
        out: list[str] = []
        for part in (self.frontend_urls or "").split(","):
            if part.strip():
                out.append(part.strip())
        return out

    @property
    def github_repo_slug(self) -> str:
        return f"{self.github_owner}/{self.github_repo}"
