"""Per-run JSONL logs for subagent executions.

Each subagent run appends events to::

    $LANTERN_HOME/logs/subagents/<name>/<run_id>.jsonl

One JSON object per line::

    {"ts": "2025-01-01T12:00:00.000000", "run_id": "...", "event": "tool_call", "data": {...}}

Logging is best effort. A failed write is reported through ``logging`` and
never propagates into the run.
"""

import json
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from lantern_constants import get_lantern_home

logger = logging.getLogger(__name__)

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def generate_run_id() -> str:
    """Sortable run id: ``YYYYmmdd-HHMMSS-<8 hex>``."""
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


def sanitize_path(component: str) -> str:
    """Make ``component`` safe as a single path segment."""
    cleaned = _UNSAFE_PATH_CHARS.sub("_", component or "").strip("._")
    return cleaned or "unnamed"


def get_log_directory(subagent_name: str, base_dir: Optional[Path] = None) -> Path:
    root = Path(base_dir) if base_dir else get_lantern_home() / "logs" / "subagents"
    return root / sanitize_path(subagent_name)


class RunLogger:
    """Append-only JSONL log for one subagent run.

    Args:
        subagent_name: Name of the subagent (directory under the logs root).
        run_id: Run identifier; generated when omitted.
        enabled: When False every call is a no-op.
        base_dir: Override for the logs root (tests).
    """

    def __init__(self, subagent_name: str, run_id: Optional[str] = None,
                 enabled: bool = True, base_dir: Optional[Path] = None):
        self.subagent_name = subagent_name
        self.run_id = run_id or generate_run_id()
        self.enabled = enabled
        self.path = get_log_directory(subagent_name, base_dir) / f"{sanitize_path(self.run_id)}.jsonl"

    def log(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        if not self.enabled:
            return
        entry = {
            "ts": datetime.now().isoformat(),
            "run_id": self.run_id,
            "event": event,
            "data": data or {},
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        except OSError as e:
            logger.warning("Failed to write subagent log %s: %s", self.path, e)
