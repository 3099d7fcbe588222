from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional
import threading


class OpsLogger:
    """Append-only JSONL logger for operational records.

    - Writes one JSON object per line to a file (UTF-8, newline-delimited)
    - Thread-safe (coarse lock); HTTP workers emit concurrently
    - Best-effort: never raises to caller
    - ``file_path=None`` mirrors to stdout only
    """

    def __init__(self, file_path: Optional[Path] = None, also_stdout: bool = False) -> None:
        self.file_path = Path(file_path) if file_path else None
        self.also_stdout = bool(also_stdout) or self.file_path is None
        self._lock = threading.Lock()
        if self.file_path is not None:
            try:
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError:
                pass

    def emit(self, record: Dict[str, Any]) -> None:
        payload = {"harvest_ops": 1, **record}
        try:
            line = json.dumps(payload, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            line = json.dumps({"harvest_ops": 1, "_serialization_error": True, "record_str": str(record)})
        with self._lock:
            if self.file_path is not None:
                try:
                    with self.file_path.open("a", encoding="utf-8") as f:
                        f.write(line)
                        f.write("\n")
                except OSError:
                    # Never propagate logging errors
                    pass
            if self.also_stdout:
                print(line)
