"""
Video job service: the public operations of the ingest core.

Lifecycle of a submission:
    validate upload -> extract metadata -> duration limit -> choose qualities
    -> job created PENDING -> stored -> admitted to PROCESSING when the
    concurrency gate has a free slot -> transcoder runs on the executor
    -> COMPLETED | FAILED (error or timeout), or CANCELLED by the owner

Rules:
- Every state change happens under the service lock and is committed as a
  whole record, so there is a single writer per job
- The gate slot is released by whichever transition moves the job out of
  PROCESSING, and only by that one, and only if this process admitted it
- The lock guards the in-process index only; durable-tier reads happen
  before it is taken
- A freed slot goes to the oldest pending job (FIFO)
- A late transcoder outcome for a job that already left PROCESSING
  (cancelled or timed out) is ignored
- Listeners are told about committed changes after the lock is released;
  they are best-effort and their errors are logged, never raised
"""

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from ..config.catalog import QualityCatalog, DEFAULT_CATALOG
from ..config.settings import IngestSettings, DEFAULT_SETTINGS
from ..execution.base import CancellationToken, Transcoder, TranscodeResult
from ..execution.gate import ConcurrencyGate
from ..manifest.builder import ManifestConfig, build_manifest_config
from ..metadata.errors import MetadataError
from ..metadata.extractors import FFProbeExtractor, MetadataExtractor
from ..persistence.store import DEFAULT_USER_LIMIT, JobStore
from ..uploads.models import VideoUpload
from ..uploads.validators import UploadValidator
from .errors import ProcessingError, Unauthorized
from .models import JobIdGenerator, JobStatus, SubmitOptions, VideoJob, utcnow
from .qualities import QualitySelector
from .state import CANCELLABLE_JOB_STATES, validate_job_transition

logger = logging.getLogger(__name__)

JobListener = Callable[[VideoJob], None]


class VideoJobService:
    """
    Owns job state and admission for one process.

    Build one per process (see ingest.bootstrap.build_service) and share it.
    """

    def __init__(
        self,
        settings: IngestSettings = DEFAULT_SETTINGS,
        transcoder: Optional[Transcoder] = None,
        extractor: Optional[MetadataExtractor] = None,
        store: Optional[JobStore] = None,
        catalog: QualityCatalog = DEFAULT_CATALOG,
        validator: Optional[UploadValidator] = None,
        executor: Optional[Executor] = None,
        id_generator: Optional[Callable[[], str]] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        """
        Args:
            settings: Limits, storage and manifest settings
            transcoder: Encoder for admitted jobs (FFmpegTranscoder by default)
            extractor: Metadata extractor (FFProbeExtractor by default)
            store: Job store (in-process only by default)
            catalog: Rendition profiles
            validator: Upload validator (built from settings by default)
            executor: Runs transcodes (thread pool sized max_concurrent_jobs by default)
            id_generator: Job id factory
            timer_factory: threading.Timer compatible factory for timeouts
        """
        if transcoder is None:
            from ..execution.ffmpeg import FFmpegTranscoder
            transcoder = FFmpegTranscoder(settings, catalog)

        self.settings = settings
        self.transcoder = transcoder
        self.extractor = extractor or FFProbeExtractor()
        self.store = store or JobStore(ttl_seconds=settings.storage.retention_processed)
        self.catalog = catalog
        self.validator = validator or UploadValidator(settings)
        self.selector = QualitySelector(catalog)
        self.gate = ConcurrencyGate(settings.limits.max_concurrent_jobs)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.limits.max_concurrent_jobs,
            thread_name_prefix="ingest-transcode",
        )
        self._new_id = id_generator or JobIdGenerator()
        self._timer_factory = timer_factory

        self._lock = threading.RLock()
        self._tokens: Dict[str, CancellationToken] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._listeners: List[JobListener] = []
        self._closed = False

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def submit_video(
        self,
        upload: VideoUpload,
        user_id: str,
        course_id: Optional[str] = None,
        options: Optional[SubmitOptions] = None,
    ) -> VideoJob:
        """
        Validate an upload and create its job.

        Returns:
            Snapshot of the new job. Normally PENDING; FAILED when the
            source could not be probed (the job still exists so the
            owner can see what went wrong).

        Raises:
            ValidationError: The upload, its duration or the requested
                qualities were rejected. No job is created.
        """
        options = options or SubmitOptions()

        self.validator.validate(upload)
        if options.qualities is not None:
            # Reject a bad override before spending time on extraction
            self.selector.resolve_qualities(None, options.qualities)

        job_id = self._new_id()
        input_path = upload.path or self.settings.storage.input_path(job_id, upload.filename)

        try:
            metadata = self.extractor.extract(upload)
        except MetadataError as e:
            return self._create_unreadable(job_id, upload, user_id, course_id, options, input_path, e)

        self.validator.validate_duration(metadata)
        qualities = self.selector.resolve_qualities(metadata, options.qualities)

        job = VideoJob(
            id=job_id,
            user_id=user_id,
            course_id=course_id,
            original_filename=upload.filename,
            original_filesize=upload.size,
            input_path=input_path,
            metadata=metadata,
            qualities=qualities,
            options=options,
        )
        with self._lock:
            self.store.put(job)
            snapshot = job.snapshot()

        logger.info(f"[Jobs] Created {job_id} for user {user_id}: {', '.join(qualities)}")
        self._notify(snapshot)
        self._dispatch()
        return snapshot

    def get_video_job(self, job_id: str) -> Optional[VideoJob]:
        """Current record for a job, None if unknown."""
        return self.store.get(job_id)

    def get_user_video_jobs(self, user_id: str, limit: int = DEFAULT_USER_LIMIT) -> List[VideoJob]:
        """A user's jobs, newest first, at most `limit`."""
        return self.store.list_by_user(user_id, limit)

    def cancel_video_job(self, job_id: str, caller_id: str) -> bool:
        """
        Cancel a pending or processing job.

        Returns:
            True if the job was cancelled, False if it is unknown or
            already terminal

        Raises:
            Unauthorized: If the caller does not own the job
        """
        # A record only in the durable tier is promoted before taking the lock
        if self.store.get(job_id) is None:
            return False

        with self._lock:
            job = self.store.index.get(job_id)
            if job is None:
                return False
            if job.user_id != caller_id:
                logger.warning(f"[Jobs] User {caller_id} attempted to cancel {job_id}")
                raise Unauthorized(job_id, caller_id)
            if job.status not in CANCELLABLE_JOB_STATES:
                return False

            was_processing = job.status == JobStatus.PROCESSING
            validate_job_transition(job.id, job.status, JobStatus.CANCELLED)
            job.status = JobStatus.CANCELLED
            job.progress = 0
            self.store.put(job)
            freed = was_processing and self._leave_processing(job_id, "cancelled by owner")
            snapshot = job.snapshot()

        logger.info(f"[Jobs] Cancelled {job_id}")
        self._notify(snapshot)
        if freed:
            self._dispatch()
        return True

    def report_progress(self, job_id: str, percent: float) -> bool:
        """
        Record transcoder progress.

        The value is clamped to 0-100 and applied only while the job is
        PROCESSING in this process and only if it does not go backwards.

        Returns:
            True if the record changed
        """
        percent = max(0, min(100, int(percent)))
        with self._lock:
            job = self.store.index.get(job_id)
            if job is None or job.status != JobStatus.PROCESSING:
                return False
            if percent <= job.progress:
                return False
            job.progress = percent
            self.store.put(job)
            snapshot = job.snapshot()

        self._notify(snapshot)
        return True

    def get_manifest_config(self, job_id: str) -> Optional[ManifestConfig]:
        """Packaging parameters for a job, None if unknown."""
        job = self.store.get(job_id)
        if job is None:
            return None
        return build_manifest_config(job, self.settings)

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """
        Register a listener for committed job changes.

        Returns:
            A callable that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop admitting jobs and release resources.

        Running transcodes are left to finish when wait is True. Pending
        jobs stay pending.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        logger.info("[Jobs] Shutting down")
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

        self.store.close()

    # -------------------------------------------------------------------------
    # Admission and outcomes
    # -------------------------------------------------------------------------

    def _dispatch(self) -> None:
        """Admit pending jobs, oldest first, while the gate has room."""
        while True:
            with self._lock:
                if self._closed:
                    return
                pending = self.store.pending_jobs()
                if not pending or not self.gate.try_admit():
                    return

                job = pending[0]
                validate_job_transition(job.id, job.status, JobStatus.PROCESSING)
                job.status = JobStatus.PROCESSING
                job.started_at = utcnow()
                if job.metadata is not None:
                    job.estimated_duration = job.metadata.duration * len(job.qualities)
                self.store.put(job)

                token = CancellationToken()
                self._tokens[job.id] = token
                timer = self._timer_factory(
                    self.settings.limits.processing_timeout,
                    self._on_timeout,
                    args=(job.id,),
                )
                timer.daemon = True
                self._timers[job.id] = timer
                snapshot = job.snapshot()

            timer.start()
            logger.info(
                f"[Jobs] Admitted {job.id} "
                f"({self.gate.in_flight}/{self.gate.capacity} in flight)"
            )
            self._notify(snapshot)

            try:
                self._executor.submit(self._run, snapshot, token)
            except RuntimeError as e:
                # Executor already shut down
                self._fail(job.id, f"Could not schedule transcoding: {e}")

    def _run(self, job: VideoJob, token: CancellationToken) -> None:
        """Worker body: run the transcoder and commit its outcome."""
        try:
            result = self.transcoder.transcode(
                job, token, lambda percent: self.report_progress(job.id, percent)
            )
        except Exception as e:
            if token.cancelled:
                logger.info(f"[Jobs] Transcoder for {job.id} stopped: {token.reason}")
                return
            logger.exception(f"[Jobs] Transcoding failed for {job.id}")
            self._fail(job.id, str(e) or type(e).__name__)
            return

        self._complete(job.id, result)

    def _complete(self, job_id: str, result: TranscodeResult) -> None:
        with self._lock:
            job = self.store.index.get(job_id)
            if job is None or job.status != JobStatus.PROCESSING:
                logger.info(f"[Jobs] Ignoring late result for {job_id}")
                return
            validate_job_transition(job.id, job.status, JobStatus.COMPLETED)
            job.status = JobStatus.COMPLETED
            job.progress = 100
            job.completed_at = utcnow()
            job.output_path = result.output_path
            self.store.put(job)
            self._leave_processing(job_id)
            snapshot = job.snapshot()

        logger.info(f"[Jobs] Completed {job_id}: {result.output_path}")
        self._notify(snapshot)
        self._dispatch()

    def _fail(self, job_id: str, error: str, stop_reason: Optional[str] = None) -> None:
        with self._lock:
            job = self.store.index.get(job_id)
            if job is None or job.status != JobStatus.PROCESSING:
                return
            validate_job_transition(job.id, job.status, JobStatus.FAILED)
            job.status = JobStatus.FAILED
            job.error = error
            job.completed_at = utcnow()
            self.store.put(job)
            self._leave_processing(job_id, stop_reason)
            snapshot = job.snapshot()

        logger.error(f"[Jobs] Failed {job_id}: {error}")
        self._notify(snapshot)
        self._dispatch()

    def _on_timeout(self, job_id: str) -> None:
        timeout = self.settings.limits.processing_timeout
        self._fail(
            job_id,
            f"Processing timed out after {timeout:.0f}s",
            stop_reason="processing timeout",
        )

    def _leave_processing(self, job_id: str, stop_reason: Optional[str] = None) -> bool:
        """
        Bookkeeping for a job leaving PROCESSING. Caller holds the lock.

        A token exists only for jobs this process admitted, so a PROCESSING
        record promoted from the durable tier (admitted by another process,
        or before a restart) never gives back a slot it did not take.

        Returns:
            True if a gate slot was released
        """
        timer = self._timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()
        token = self._tokens.pop(job_id, None)
        if token is None:
            logger.info(f"[Jobs] {job_id} was not admitted here, no slot to release")
            return False
        self.gate.release()
        if stop_reason:
            token.cancel(stop_reason)
        return True

    def _create_unreadable(
        self,
        job_id: str,
        upload: VideoUpload,
        user_id: str,
        course_id: Optional[str],
        options: SubmitOptions,
        input_path: str,
        cause: MetadataError,
    ) -> VideoJob:
        """Record a source that passed validation but could not be probed."""
        error = ProcessingError(job_id, str(cause))
        job = VideoJob(
            id=job_id,
            user_id=user_id,
            course_id=course_id,
            original_filename=upload.filename,
            original_filesize=upload.size,
            input_path=input_path,
            status=JobStatus.FAILED,
            error=error.reason,
            metadata=None,
            qualities=options.qualities or [self.catalog.lowest.label],
            options=options,
            completed_at=utcnow(),
        )
        with self._lock:
            self.store.put(job)
            snapshot = job.snapshot()

        logger.error(f"[Jobs] Created {job_id} as failed: {error.reason}")
        self._notify(snapshot)
        return snapshot

    def _notify(self, job: VideoJob) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(job.snapshot())
            except Exception:
                logger.exception(f"[Jobs] Listener failed for {job.id}")
