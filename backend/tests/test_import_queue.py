import asyncio
from pathlib import Path

import pytest

from archive_vault.services import import_queue
from archive_vault.services.import_queue import (
    MAX_EVENTS_PER_JOB,
    ImportJobStatus,
    ImportQueueManager,
)
from archive_vault.services.import_service import ImportSummary
from archive_vault.services.progress import ProgressEvent


class RecordingProcessor:
    """Imports nothing; records the order jobs ran in."""

    def __init__(self, fail_on=None, events=1):
        self.calls = []
        self.fail_on = fail_on
        self.events = events
        self.running = 0
        self.max_running = 0

    async def __call__(self, paths, observer):
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            self.calls.append([p.name for p in paths])
            for i in range(self.events):
                observer(ProgressEvent(operation="import", current=i, total=self.events, step="hash"))
            await asyncio.sleep(0)
            if self.fail_on and self.fail_on in self.calls[-1]:
                raise RuntimeError("disk full")
            return ImportSummary(imported=len(paths))
        finally:
            self.running -= 1


def test_jobs_run_one_at_a_time_in_order():
    processor = RecordingProcessor()

    async def scenario():
        queue = ImportQueueManager(processor)
        await queue.start()
        first = await queue.submit([Path("a.zip")])
        second = await queue.submit([Path("b.zip"), Path("c.zip")])
        await queue.wait(second.job_id, timeout=5)
        await queue.stop()
        return first, second, queue.get_stats()

    first, second, stats = asyncio.run(scenario())
    assert processor.calls == [["a.zip"], ["b.zip", "c.zip"]]
    assert processor.max_running == 1
    assert first.status == ImportJobStatus.COMPLETED
    assert second.summary.imported == 2
    assert stats["completed"] == 2
    assert stats["queue_size"] == 0


def test_failed_job_does_not_stop_worker():
    processor = RecordingProcessor(fail_on="bad.zip")

    async def scenario():
        queue = ImportQueueManager(processor)
        await queue.start()
        bad = await queue.submit([Path("bad.zip")])
        good = await queue.submit([Path("good.zip")])
        await queue.wait(good.job_id, timeout=5)
        await queue.stop()
        return bad, good

    bad, good = asyncio.run(scenario())
    assert bad.status == ImportJobStatus.FAILED
    assert "disk full" in bad.error
    assert good.status == ImportJobStatus.COMPLETED
    assert bad.to_dict()["summary"] is None


def test_job_keeps_latest_events_only():
    processor = RecordingProcessor(events=MAX_EVENTS_PER_JOB + 20)

    async def scenario():
        queue = ImportQueueManager(processor)
        await queue.start()
        job = await queue.submit([Path("a.zip")])
        await queue.wait(job.job_id, timeout=5)
        await queue.stop()
        return job

    job = asyncio.run(scenario())
    assert len(job.events) == MAX_EVENTS_PER_JOB
    payload = job.to_dict()
    assert payload["status"] == "completed"
    assert payload["progress"]["current"] == MAX_EVENTS_PER_JOB + 19


def test_stop_drains_queued_jobs():
    processor = RecordingProcessor()

    async def scenario():
        queue = ImportQueueManager(processor)
        await queue.start()
        jobs = [await queue.submit([Path(f"{i}.zip")]) for i in range(3)]
        await queue.stop()
        return jobs

    jobs = asyncio.run(scenario())
    assert [j.status for j in jobs] == [ImportJobStatus.COMPLETED] * 3


def test_submit_requires_running_queue():
    queue = ImportQueueManager(RecordingProcessor())
    with pytest.raises(RuntimeError):
        asyncio.run(queue.submit([Path("a.zip")]))


def test_oldest_finished_jobs_are_forgotten(monkeypatch):
    monkeypatch.setattr(import_queue, "MAX_FINISHED_JOBS", 2)
    processor = RecordingProcessor(fail_on="1.zip")

    async def scenario():
        queue = ImportQueueManager(processor)
        await queue.start()
        jobs = [await queue.submit([Path(f"{i}.zip")]) for i in range(4)]
        await queue.stop()
        return queue, jobs

    queue, jobs = asyncio.run(scenario())
    assert [queue.get_job(j.job_id) for j in jobs] == [None, None, jobs[2], jobs[3]]
    assert jobs[0].status == ImportJobStatus.COMPLETED
    assert jobs[1].status == ImportJobStatus.FAILED
