"""Append-only JSONL event log shared by the worker (writer) and host (tailer)."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..models.events import WorkerEvent, WorkerEventRecord
from .constants import TAILER_POLL_INTERVAL

logger = logging.getLogger(__name__)


class EventLogWriter:
    """Appends timestamped worker events to an ``events.jsonl`` file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, event: WorkerEvent) -> WorkerEventRecord:
        """Append one event as a single newline-terminated JSON line."""
        record = WorkerEventRecord(timestamp=datetime.now(timezone.utc), event=event)
        line = record.model_dump_json() + "\n"
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
        return record


def read_event_log(path: Path) -> List[WorkerEventRecord]:
    """Read every complete, parseable record from an event log file."""
    records: List[WorkerEventRecord] = []
    tailer = EventTailer(path, on_event=records.append, on_error=lambda line, e: None)
    tailer.read_new_lines()
    return records


class EventTailer:
    """Polls an event log for growth and reports new records in file order.

    Only newline-terminated lines past the last byte offset are parsed. A
    trailing partial line is left for the next poll. A line that fails to
    parse is reported through ``on_error`` and skipped.
    """

    def __init__(
        self,
        path: Path,
        on_event: Callable[[WorkerEventRecord], None],
        on_error: Optional[Callable[[str, Exception], None]] = None,
        poll_interval: float = TAILER_POLL_INTERVAL,
    ):
        self.path = Path(path)
        self.on_event = on_event
        self.on_error = on_error
        self.poll_interval = poll_interval
        self.offset = 0
        self._task: Optional[asyncio.Task] = None

    def read_new_lines(self) -> int:
        """Consume complete lines appended since the last call.

        Returns:
            Number of lines consumed (parsed or rejected)
        """
        try:
            with open(self.path, "rb") as f:
                f.seek(self.offset)
                data = f.read()
        except FileNotFoundError:
            return 0

        end = data.rfind(b"\n")
        if end < 0:
            return 0

        consumed = 0
        for raw in data[:end].split(b"\n"):
            self.offset += len(raw) + 1
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            consumed += 1
            try:
                record = WorkerEventRecord.model_validate_json(line)
            except ValidationError as e:
                self._report_error(line, e)
                continue
            self.on_event(record)
        return consumed

    def _report_error(self, line: str, error: Exception) -> None:
        if self.on_error is not None:
            self.on_error(line, error)
        else:
            logger.warning(f"Skipping unparseable event line in {self.path}: {error}")

    async def _poll(self) -> None:
        while True:
            try:
                self.read_new_lines()
            except Exception as e:
                logger.error(f"Event tailer for {self.path} failed to dispatch: {e}")
            await asyncio.sleep(self.poll_interval)

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        """Stop polling, then consume anything left in the file."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.read_new_lines()
