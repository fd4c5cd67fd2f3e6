import threading
import time
from concurrent.futures import ThreadPoolExecutor

from flipbook.config.settings import Settings
from flipbook.database.connection import get_connection
from flipbook.database.models import JobRecord
from flipbook.database.repositories.job_repository import JobRepository
from flipbook.logging.logger import Log
from flipbook.worker.job_runner import JobRunner
from flipbook.worker.rate_limiter import RateLimiter


class Worker:
    """Poll loop: wait for a slot -> rate limit -> claim -> dispatch to the pool."""

    def __init__(
        self,
        job_repo: JobRepository,
        job_runner: JobRunner,
        settings: Settings,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings
        self._rate_limiter = rate_limiter or RateLimiter(
            settings.queue_rate_limit_max, settings.queue_rate_limit_window
        )
        self._slots = threading.BoundedSemaphore(settings.queue_concurrency)
        self._stop = threading.Event()
        self._paused = threading.Event()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until interrupted or stopped.

        At most ``queue_concurrency`` jobs run at once. If max_jobs is set,
        stop after dispatching that many jobs (for testing); in-flight jobs
        are always awaited before returning.
        """
        Log.info(
            f"Worker started, polling for jobs (concurrency {self._settings.queue_concurrency})"
        )
        jobs_started = 0
        executor = ThreadPoolExecutor(
            max_workers=self._settings.queue_concurrency, thread_name_prefix="job"
        )
        try:
            while not self._stop.is_set():
                if max_jobs is not None and jobs_started >= max_jobs:
                    break
                if self._paused.is_set():
                    time.sleep(self._settings.job_poll_interval_seconds)
                    continue
                self._slots.acquire()
                self._rate_limiter.wait()
                job = self._try_claim_job()
                if job:
                    self._rate_limiter.record()
                    executor.submit(self._run_job, job)
                    jobs_started += 1
                else:
                    self._slots.release()
                    Log.debug("No jobs available, sleeping")
                    time.sleep(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        finally:
            executor.shutdown(wait=True)
            Log.info(f"Worker stopped after dispatching {jobs_started} jobs")

    def pause(self) -> None:
        """Stop claiming new jobs; jobs already running finish normally."""
        self._paused.set()
        Log.info("Worker paused")

    def resume(self) -> None:
        self._paused.clear()
        Log.info("Worker resumed")

    @property
    def is_paused(self) -> bool:
        return self._paused.is_set()

    def stop(self) -> None:
        """Ask the poll loop to exit after the current iteration."""
        self._stop.set()

    def _run_job(self, job: JobRecord) -> None:
        try:
            self._job_runner.run(job)
        except Exception as exc:
            Log.exception(f"Job {job.id} crashed outside the runner's error handling: {exc}")
        finally:
            self._slots.release()

    def _try_claim_job(self) -> JobRecord | None:
        """Attempt to claim the next queued job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
