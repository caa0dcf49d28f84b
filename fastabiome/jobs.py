"""
Background Analysis Jobs

Runs analyses off the request-handling path. An ``AnalysisJobManager`` is
created and owned by the caller (for example a web service); it is never a
module-level singleton, so separate managers never share state.

- ``submit`` creates an AnalysisContext (status "pending") and schedules
  ``core.run_analysis`` on a thread pool
- ``get`` / ``status`` let callers poll
- ``mark_failed`` records a cancellation; work that is already running is
  not interrupted and its outcome is discarded

No timeouts are applied; callers may wait on the returned future with their
own deadline.

Example Usage:
    >>> with AnalysisJobManager(max_workers=2) as manager:
    ...     job = manager.submit("uploads/abc.fasta", "river_sample.fasta")
    ...     job.future.result()
    ...     print(manager.status(job.context.file_id))
    completed
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging
import threading

from . import config, core

logger = logging.getLogger(__name__)


@dataclass
class AnalysisJob:
    context: core.AnalysisContext
    file_path: Path
    future: Optional[Future] = None


class AnalysisJobManager:
    """
    Tracks and executes analysis jobs on a thread pool.

    Parameters
    ----------
    config_obj : PipelineConfig, optional
        Configuration used for every job (default: defaults)
    max_workers : int, optional
        Pool size (default: ``config_obj.jobs.max_workers``)
    """

    def __init__(
        self,
        config_obj: Optional[config.PipelineConfig] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.config = config_obj or config.get_default_config()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or self.config.jobs.max_workers,
            thread_name_prefix="fastabiome",
        )
        self._jobs: Dict[str, AnalysisJob] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        file_path: Union[str, Path],
        file_name: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> AnalysisJob:
        """Register a job and start it in the background."""
        file_path = Path(file_path)
        context = core.AnalysisContext(file_name=file_name or file_path.name)
        if file_id is not None:
            context.file_id = file_id

        job = AnalysisJob(context=context, file_path=file_path)
        with self._lock:
            if context.file_id in self._jobs:
                raise ValueError(f"Job already exists: {context.file_id}")
            self._jobs[context.file_id] = job

        logger.info(f"Queued analysis {context.file_id} for {context.file_name}")
        job.future = self._executor.submit(self._run, job)
        return job

    def _run(self, job: AnalysisJob) -> Optional[dict]:
        context = job.context
        if context.cancelled:
            logger.info(f"Skipping cancelled analysis {context.file_id}")
            return None

        try:
            result = core.run_analysis(context, job.file_path, self.config)
        except core.AnalysisError as e:
            logger.error(f"Background analysis {context.file_id} failed: {e}")
            raise

        if context.cancelled:
            logger.info(f"Discarded result of cancelled analysis {context.file_id}")
            return None
        return result

    def get(self, file_id: str) -> Optional[AnalysisJob]:
        with self._lock:
            return self._jobs.get(file_id)

    def status(self, file_id: str) -> Optional[str]:
        job = self.get(file_id)
        return job.context.status if job else None

    def list_jobs(self) -> List[core.AnalysisContext]:
        with self._lock:
            return [job.context for job in self._jobs.values()]

    def mark_failed(self, file_id: str, message: str = "Cancelled") -> bool:
        """
        Mark a job as failed. Best effort only: a queued job is skipped, a
        running analysis keeps running and its result is discarded. Returns
        False for unknown or finished jobs.
        """
        with self._lock:
            job = self._jobs.get(file_id)
        if job is None or not job.context.cancel(message):
            return False
        if job.future is not None:
            job.future.cancel()
        return True

    def remove(self, file_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(file_id, None) is not None

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AnalysisJobManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)
