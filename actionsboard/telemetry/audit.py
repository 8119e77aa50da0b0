from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from actionsboard.models import BroadcastEvent


class AuditLogger:
    """Append-only JSONL trail of everything pushed to dashboard clients."""

    def __init__(self, path: str):
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._lock = threading.Lock()

    def write(
        self,
        event_type: str,
        payload: Dict[str, Any],
        *,
        actor: str = "actionsboard",
        timestamp: Optional[str] = None,
    ) -> None:
        record = {
            "ts": timestamp or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "actor": actor,
            "event_type": event_type,
            "payload": payload,
        }
        line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def __call__(self, event: BroadcastEvent) -> None:
        self.write(event.event.value, event.data, actor="broadcast", timestamp=event.data.get("timestamp"))
