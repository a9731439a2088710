"""In-memory log collection for diagnostics reports."""

import logging
import platform
import threading
from collections import deque

LOG_FORMAT = "[{asctime}|{name}]{levelname}  {message}"


class DiagnosticsCollector(logging.Handler):
    """Keeps the most recent formatted log records.

    Attach it to a logger (usually the ``vid2live`` package logger) and call
    :meth:`report` to render a diagnostics text.
    """

    def __init__(self, capacity: int = 500, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self.records: deque[str] = deque(maxlen=capacity)
        self._records_lock = threading.Lock()
        self.setFormatter(logging.Formatter(LOG_FORMAT, style="{", datefmt="%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._records_lock:
            self.records.append(line)

    def lines(self) -> list[str]:
        with self._records_lock:
            return list(self.records)

    def clear(self) -> None:
        with self._records_lock:
            self.records.clear()

    def report(self, extra: dict[str, str] | None = None) -> str:
        header = {
            "App": "vid2live",
            "Python": platform.python_version(),
            "Platform": platform.platform(),
        }
        header.update(extra or {})
        meta = "\n".join(f"{k}: {v}" for k, v in sorted(header.items()))
        logs = "\n".join(self.lines())
        return f"===== vid2live diagnostics =====\n{meta}\n\n----- Recent logs -----\n{logs}\n"
