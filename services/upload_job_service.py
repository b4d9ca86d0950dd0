"""
In-memory upload job tracking.

Jobs live for the life of the process only; there is no persistence.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog

from models.job import JobStatus, UploadJob
from exceptions import UploadJobNotFoundError

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UploadJobService:
    """
    Tracks progress of upload runs for the job endpoints.

    Route handlers run in a thread pool, so access is serialized
    with a lock.
    """

    def __init__(self):
        self._jobs: dict[str, UploadJob] = {}
        self._lock = threading.Lock()

    def create(self, name: str, total_files: int = 0) -> UploadJob:
        now = _now()
        job = UploadJob(
            id=f"job_{uuid.uuid4().hex[:12]}",
            name=name,
            total_files=total_files,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job.id] = job
        logger.info("upload_job_created", job_id=job.id, name=name, total_files=total_files)
        return job

    def _get_locked(self, job_id: str) -> UploadJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise UploadJobNotFoundError(job_id)
        return job

    def start(self, job_id: str, total_files: Optional[int] = None) -> UploadJob:
        with self._lock:
            job = self._get_locked(job_id)
            job.status = JobStatus.UPLOADING
            job.progress = 0
            if total_files is not None:
                job.total_files = total_files
            job.updated_at = _now()
        logger.info("upload_job_started", job_id=job_id, total_files=job.total_files)
        return job

    def update_progress(self, job_id: str, processed_files: int, total_files: Optional[int] = None) -> UploadJob:
        """Record processed files; progress is a 0-100 percentage."""
        with self._lock:
            job = self._get_locked(job_id)
            if total_files is not None:
                job.total_files = total_files
            job.processed_files = processed_files
            if job.total_files:
                job.progress = min(100, round(processed_files / job.total_files * 100))
            job.updated_at = _now()
        logger.debug("upload_job_progress", job_id=job_id, progress=job.progress)
        return job

    def complete(self, job_id: str) -> UploadJob:
        with self._lock:
            job = self._get_locked(job_id)
            job.status = JobStatus.COMPLETED
            job.progress = 100
            job.processed_files = max(job.processed_files, job.total_files)
            job.updated_at = _now()
        logger.info("upload_job_completed", job_id=job_id)
        return job

    def fail(self, job_id: str, error: str) -> UploadJob:
        with self._lock:
            job = self._get_locked(job_id)
            job.status = JobStatus.FAILED
            job.error = error
            job.updated_at = _now()
        logger.warning("upload_job_failed", job_id=job_id, error=error)
        return job

    def get(self, job_id: str) -> UploadJob:
        """
        Raises:
            UploadJobNotFoundError: If no such job exists
        """
        with self._lock:
            return self._get_locked(job_id)

    def list_jobs(self) -> list[UploadJob]:
        """All jobs, newest first."""
        with self._lock:
            jobs = list(self._jobs.values())
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def clear_completed(self) -> int:
        """Drop completed jobs; returns how many were removed."""
        with self._lock:
            done = [job_id for job_id, job in self._jobs.items() if job.status == JobStatus.COMPLETED]
            for job_id in done:
                del self._jobs[job_id]
        logger.info("upload_jobs_cleared", count=len(done))
        return len(done)


# Singleton instance for convenience
_upload_job_service: Optional[UploadJobService] = None

def get_upload_job_service() -> UploadJobService:
    """Get or create UploadJobService instance."""
    global _upload_job_service
    if _upload_job_service is None:
        _upload_job_service = UploadJobService()
    return _upload_job_service
