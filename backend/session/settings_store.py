"""
JSON-file persistence for the last accepted connection target.

File format:
    {"host": "192.168.1.20", "port": 9000}
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

from constants import DEFAULT_TARGET_PORT
from observability.logger import log_event
from orchestrator.target import ConnectionTarget


class JsonSettingsStore:
    """
    Loads and saves the target as a small JSON document.

    load() never raises: a missing or unreadable file yields an empty
    host and the default port. save() writes atomically and lets OSError
    propagate.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> ConnectionTarget:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ConnectionTarget(host="", port=DEFAULT_TARGET_PORT)
        except (OSError, ValueError) as e:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "SETTINGS_LOAD_FAILED",
                "path": str(self.path),
                "error": str(e),
            })
            return ConnectionTarget(host="", port=DEFAULT_TARGET_PORT)

        if not isinstance(raw, dict):
            return ConnectionTarget(host="", port=DEFAULT_TARGET_PORT)

        host = raw.get("host")
        port = raw.get("port")
        if not isinstance(host, str):
            host = ""
        if isinstance(port, bool) or not isinstance(port, int) or port == 0:
            port = DEFAULT_TARGET_PORT

        return ConnectionTarget(host=host, port=port)

    def save(self, host: str, port: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps({"host": host, "port": port}), encoding="utf-8")
        os.replace(tmp, self.path)
