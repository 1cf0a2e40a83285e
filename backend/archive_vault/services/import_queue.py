"""
Import Queue Manager with a single worker.

Import jobs run strictly one after another on one background worker so the
fingerprint check and the transactional write of every archive are
serialized against the datastore, while request handlers stay responsive.
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .import_service import ImportSummary
from .progress import ProgressEvent
from ..api.exceptions import describe_error
from ..core.logging_config import get_logger

logger = get_logger(__name__)

# Kept per job so clients polling a job see recent steps without unbounded growth
MAX_EVENTS_PER_JOB = 500
# Finished jobs kept for GET /imports/{job_id}; older ones are forgotten first
MAX_FINISHED_JOBS = 100


class ImportJobStatus(Enum):
    """Import job status."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ImportJob:
    """A batch of archives queued for import."""
    job_id: str
    paths: List[Path]
    status: ImportJobStatus = ImportJobStatus.PENDING
    summary: Optional[ImportSummary] = None
    error: Optional[str] = None
    events: List[ProgressEvent] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def record_event(self, event: ProgressEvent):
        """Progress observer for this job."""
        self.events.append(event)
        if len(self.events) > MAX_EVENTS_PER_JOB:
            del self.events[: len(self.events) - MAX_EVENTS_PER_JOB]

    def mark_processing(self):
        """Mark job as processing."""
        self.status = ImportJobStatus.PROCESSING
        self.started_at = datetime.now()

    def mark_completed(self, summary: ImportSummary):
        """Mark job as completed."""
        self.status = ImportJobStatus.COMPLETED
        self.summary = summary
        self.completed_at = datetime.now()
        self.done.set()

    def mark_failed(self, error: str):
        """Mark job as failed."""
        self.status = ImportJobStatus.FAILED
        self.error = error
        self.completed_at = datetime.now()
        self.done.set()

    @property
    def latest_event(self) -> Optional[ProgressEvent]:
        return self.events[-1] if self.events else None

    def to_dict(self) -> Dict[str, Any]:
        latest = self.latest_event
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "paths": [str(p) for p in self.paths],
            "summary": self.summary.to_dict() if self.summary else None,
            "error": self.error,
            "progress": latest.to_dict() if latest else None,
            "events": [e.to_dict() for e in self.events],
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


# (paths, observer) -> summary
ImportProcessor = Callable[[List[Path], Callable[[ProgressEvent], None]], Awaitable[ImportSummary]]


class ImportQueueManager:
    """
    Queues import jobs and runs them on exactly one worker.
    """

    def __init__(self, processor: ImportProcessor):
        """
        Initialize import queue manager.

        Args:
            processor: Coroutine function importing a list of paths with a progress observer
        """
        self.processor = processor
        self.job_queue: Optional[asyncio.Queue] = None
        self.jobs: Dict[str, ImportJob] = {}
        self.worker: Optional[asyncio.Task] = None
        self.is_running = False

        self.stats = {
            "total_jobs": 0,
            "completed": 0,
            "failed": 0,
        }

    async def start(self):
        """Start the worker."""
        if self.is_running:
            logger.warning("Import worker already running, skipping start")
            return
        self.job_queue = asyncio.Queue()
        self.is_running = True
        self.worker = asyncio.create_task(self._worker())
        logger.info("Import worker started")

    async def submit(self, paths: List[Path]) -> ImportJob:
        """Add a job to the queue."""
        if not self.is_running:
            raise RuntimeError("Import queue is not running")
        job = ImportJob(job_id=str(uuid.uuid4()), paths=list(paths))
        self.jobs[job.job_id] = job
        await self.job_queue.put(job)
        self.stats["total_jobs"] += 1
        logger.debug(f"Queued import job {job.job_id} ({len(job.paths)} paths, queue size: {self.job_queue.qsize()})")
        return job

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> ImportJob:
        """
        Wait until a job has finished.

        Raises:
            KeyError: If the job id is unknown
            asyncio.TimeoutError: If timeout expires first
        """
        job = self.jobs[job_id]
        await asyncio.wait_for(job.done.wait(), timeout=timeout)
        return job

    async def _worker(self):
        """Worker coroutine that processes jobs from the queue."""
        while self.is_running:
            job = await self.job_queue.get()
            try:
                await self._process_job(job)
            finally:
                self.job_queue.task_done()

    async def _process_job(self, job: ImportJob):
        job.mark_processing()
        logger.info(f"Processing import job {job.job_id} ({len(job.paths)} paths)")
        try:
            summary = await self.processor(job.paths, job.record_event)
        except Exception as e:
            error_msg = describe_error(e)
            job.mark_failed(error_msg)
            self.stats["failed"] += 1
            logger.error(f"Import job {job.job_id} failed: {error_msg}", exc_info=True)
            self._evict_finished()
            return
        job.mark_completed(summary)
        self.stats["completed"] += 1
        logger.info(f"Import job {job.job_id} completed: {summary.message()}")
        self._evict_finished()

    def _evict_finished(self):
        finished = [
            job_id for job_id, job in self.jobs.items()
            if job.status in (ImportJobStatus.COMPLETED, ImportJobStatus.FAILED)
        ]
        for job_id in finished[: max(len(finished) - MAX_FINISHED_JOBS, 0)]:
            del self.jobs[job_id]

    def get_job(self, job_id: str) -> Optional[ImportJob]:
        """Get job by ID."""
        return self.jobs.get(job_id)

    def get_stats(self) -> Dict:
        """Get current statistics."""
        return {
            **self.stats,
            "pending": sum(1 for j in self.jobs.values() if j.status == ImportJobStatus.PENDING),
            "processing": sum(1 for j in self.jobs.values() if j.status == ImportJobStatus.PROCESSING),
            "queue_size": self.job_queue.qsize() if self.job_queue else 0,
        }

    async def stop(self):
        """Let queued jobs finish, then stop the worker."""
        if not self.is_running:
            return
        logger.info(f"Stopping import worker ({self.job_queue.qsize()} jobs in queue)")
        await self.job_queue.join()
        self.is_running = False
        self.worker.cancel()
        await asyncio.gather(self.worker, return_exceptions=True)
        self.worker = None
        logger.info("Import worker stopped")
