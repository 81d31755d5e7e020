"""Install log: append-only JSON lines describing module install outcomes.

Writing the log is best-effort; a failure is logged and never breaks the build.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import List

logger = logging.getLogger(__name__)

LOG_NAME = "installs.log"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def record_install(log_dir, event: dict) -> None:
    """Append `event` to `<log_dir>/installs.log`, stamping a timestamp."""
    event_copy = dict(event)
    event_copy.setdefault("timestamp", _now_iso())
    try:
        os.makedirs(log_dir, exist_ok=True)
        path = os.path.join(log_dir, LOG_NAME)
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(event_copy, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.exception("Failed writing install log: %s", e)


def read_installs(log_dir, limit: int = 100) -> List[dict]:
    """Return the last `limit` events; unparseable lines come back as `{"raw": ...}`."""
    path = os.path.join(log_dir, LOG_NAME)
    if not os.path.exists(path):
        return []
    events = []
    with open(path, "r", encoding="utf-8") as fh:
        lines = fh.readlines()[-limit:]
    for ln in lines:
        if not ln.strip():
            continue
        try:
            events.append(json.loads(ln))
        except json.JSONDecodeError as e:
            logger.debug("Failed to parse install log line: %s", e)
            events.append({"raw": ln.strip()})
    return events
