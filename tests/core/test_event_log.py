"""Tests for the event log writer and tailer."""

import asyncio

import pytest

from claude_orchestrator.core.event_log import EventLogWriter, EventTailer, read_event_log
from claude_orchestrator.models.events import (
    DoneEvent,
    IterationStartEvent,
    MessageEvent,
)


@pytest.fixture
def events_file(tmp_path):
    return tmp_path / "logs" / "events.jsonl"


class TestEventLogWriter:
    """Test cases for EventLogWriter."""

    def test_emit_appends_one_line_per_event(self, events_file):
        writer = EventLogWriter(events_file)

        writer.emit(IterationStartEvent(iteration=1, max_iterations=3, fresh=True))
        writer.emit(MessageEvent(source="agent", text="hello"))

        lines = events_file.read_text().splitlines()
        assert len(lines) == 2
        assert '"type":"iteration:start"' in lines[0]
        assert '"timestamp"' in lines[0]

    def test_read_event_log_in_order(self, events_file):
        writer = EventLogWriter(events_file)
        events = [
            IterationStartEvent(iteration=1, max_iterations=3, fresh=True),
            MessageEvent(source="tool", text="Bash: {}"),
            DoneEvent(status="completed", iterations=1, total_cost_usd=0.5),
        ]
        for event in events:
            writer.emit(event)

        assert [r.event for r in read_event_log(events_file)] == events

    def test_read_missing_log(self, tmp_path):
        assert read_event_log(tmp_path / "missing.jsonl") == []


class TestEventTailer:
    """Test cases for EventTailer."""

    def test_partial_line_waits_for_newline(self, events_file):
        """Test a line without its newline is not parsed until completed."""
        writer = EventLogWriter(events_file)
        writer.emit(MessageEvent(source="agent", text="first"))
        complete = events_file.read_text()
        events_file.write_text(complete + '{"timestamp": "2024-01-01T00:00:00Z", "event": {"type": "time')

        received = []
        tailer = EventTailer(events_file, on_event=received.append)

        assert tailer.read_new_lines() == 1
        assert [r.event.text for r in received] == ["first"]
        assert tailer.offset == len(complete.encode())

        with open(events_file, "a") as f:
            f.write('out"}}\n')
        assert tailer.read_new_lines() == 1
        assert received[-1].event.type == "timeout"

    def test_bad_line_reported_and_skipped(self, events_file):
        writer = EventLogWriter(events_file)
        writer.emit(MessageEvent(source="agent", text="before"))
        with open(events_file, "a") as f:
            f.write("this is not json\n")
        writer.emit(MessageEvent(source="agent", text="after"))

        received, errors = [], []
        tailer = EventTailer(events_file, on_event=received.append,
                             on_error=lambda line, e: errors.append(line))

        assert tailer.read_new_lines() == 3
        assert [r.event.text for r in received] == ["before", "after"]
        assert errors == ["this is not json"]

    def test_missing_file(self, tmp_path):
        tailer = EventTailer(tmp_path / "missing.jsonl", on_event=lambda r: None)
        assert tailer.read_new_lines() == 0

    def test_no_duplicates_across_polls(self, events_file):
        writer = EventLogWriter(events_file)
        received = []
        tailer = EventTailer(events_file, on_event=received.append)

        writer.emit(MessageEvent(source="agent", text="one"))
        tailer.read_new_lines()
        tailer.read_new_lines()
        writer.emit(MessageEvent(source="agent", text="two"))
        tailer.read_new_lines()

        assert [r.event.text for r in received] == ["one", "two"]

    @pytest.mark.asyncio
    async def test_polling_and_final_drain(self, events_file):
        """Test polled events arrive while running and stop() drains the rest."""
        writer = EventLogWriter(events_file)
        received = []
        tailer = EventTailer(events_file, on_event=received.append, poll_interval=0.01)
        tailer.start()

        writer.emit(MessageEvent(source="agent", text="live"))
        for _ in range(100):
            if received:
                break
            await asyncio.sleep(0.01)
        assert [r.event.text for r in received] == ["live"]

        writer.emit(DoneEvent(status="completed", iterations=1, total_cost_usd=0.0))
        await tailer.stop()

        assert isinstance(received[-1].event, DoneEvent)
        assert len(received) == 2
