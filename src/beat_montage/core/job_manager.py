"""
Job Lifecycle Manager

Owns every montage run from submission to cleanup:

    submit ──► processing(0) ──advance──► processing(10..70)
                    │                          │
                    └──────────► completed(100) | failed
                                       │
                           retention window elapses
                                       │
                                    cleanup (run + files removed)

``submit`` returns as soon as the run exists; the workflow runs on a
bounded thread pool. Only the run's own worker writes its progress, and
only this manager touches the run store.

Usage:
    manager = MontageJobManager.from_settings()
    run_id = manager.submit({"sourceId": "745804", "region": {...},
                             "beatMarkers": [...], "musicName": "anthem.mp3"})
    manager.get_status(run_id)
"""

import os
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..config import Settings, get_settings
from ..exceptions import (
    CapacityExceeded,
    InvalidRequest,
    MontageError,
    RunNotFound,
    RunNotReady,
    SourceUnavailable,
    UnsafePathError,
)
from ..logger import logger
from .analysis_cache import AnalysisResponseCache
from .montage_workflow import MontageWorkflow, WorkflowInputs
from .models import MontageRequest, Run, RunStatus
from .run_store import RunStore
from .scheduler import DelayedTaskScheduler

GENERIC_FAILURE_MESSAGE = "Montage generation failed. Please check server logs."


def _clamp_progress(progress: float) -> int:
    return int(max(0, min(100, progress)))


def _remove_file(path: Optional[str], what: str) -> None:
    if not path:
        return
    try:
        os.remove(path)
        logger.info(f"Deleted {what}: {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"{what.capitalize()} cleanup failed for {path}: {e}")


class MontageJobManager:
    """Run table, background execution and deferred cleanup."""

    def __init__(
        self,
        workflow: MontageWorkflow,
        store: Optional[RunStore] = None,
        scheduler: Optional[DelayedTaskScheduler] = None,
        settings: Optional[Settings] = None,
        max_workers: Optional[int] = None,
        max_pending: Optional[int] = None,
    ):
        self.settings = settings or get_settings()
        self.workflow = workflow
        self.store = store or RunStore()
        self.scheduler = scheduler or DelayedTaskScheduler("run-cleanup")
        self.retention_seconds = self.settings.jobs.retention_seconds
        self.max_pending = max_pending or self.settings.jobs.max_pending_jobs
        self._admission_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or self.settings.jobs.max_concurrent_jobs,
            thread_name_prefix="montage-run",
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MontageJobManager":
        """Wire the default collaborators: one scheduler shared by cache eviction and run cleanup."""
        settings = settings or get_settings()
        scheduler = DelayedTaskScheduler("deferred")
        cache = AnalysisResponseCache(
            scheduler,
            ttl_seconds=settings.analysis.cache_ttl,
            single_flight=settings.analysis.single_flight,
        )
        workflow = MontageWorkflow(cache, settings=settings)
        return cls(workflow, scheduler=scheduler, settings=settings)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def resolve_media(self, request: MontageRequest) -> Tuple[Path, Path]:
        """
        Locate the source video and music track of a request.

        Raises:
            InvalidRequest: if musicName tries to leave the music directory
            SourceUnavailable: if either file is missing
        """
        paths = self.settings.paths
        if request.audio_upload is not None:
            audio_path = Path(request.audio_upload)
        else:
            if Path(request.music_name).name != request.music_name:
                raise InvalidRequest("musicName must be a plain file name")
            audio_path = paths.music_dir / request.music_name

        source_video = paths.source_video_for(request.source_id)

        if not audio_path.is_file():
            raise SourceUnavailable("Audio file not found")
        if not source_video.is_file():
            raise SourceUnavailable("Source video not found")
        return source_video, audio_path

    def submit(self, payload: Any, audio_upload: Optional[Path] = None) -> str:
        """
        Validate a submission, create its run and start the workflow.

        Returns the run id before any analysis or rendering happens. If the
        submission is rejected, an uploaded music file is deleted right away.

        Raises:
            InvalidRequest, SourceUnavailable, CapacityExceeded
        """
        try:
            request = MontageRequest.from_payload(payload, audio_upload)
            aligned = request.region.aligned(self.settings.timeline.frame_rate)
            if aligned.start >= aligned.end:
                raise InvalidRequest("region is shorter than one frame")
            source_video, audio_path = self.resolve_media(request)

            run_id = uuid.uuid4().hex
            output_path = self.settings.paths.output_path_for(run_id)
            with self._admission_lock:
                if self.store.count(RunStatus.PROCESSING) >= self.max_pending:
                    raise CapacityExceeded("Too many montages in progress, try again shortly.")
                self.store.create(Run(
                    id=run_id,
                    message="Initializing montage creation...",
                    output_path=str(output_path),
                    audio_upload=str(audio_upload) if audio_upload else None,
                ))
        except MontageError:
            _remove_file(str(audio_upload) if audio_upload else None, "uploaded audio")
            raise

        inputs = WorkflowInputs(
            run_id=run_id,
            request=request,
            source_video=source_video,
            audio_path=audio_path,
            output_path=output_path,
        )
        try:
            self._executor.submit(self._run_workflow, inputs)
        except RuntimeError as e:
            logger.error(f"Could not schedule run {run_id}: {e}")
            self.fail(run_id, "Montage creation request failed.")
            raise CapacityExceeded("Server is shutting down.") from e

        logger.info(f"Montage creation started for run {run_id}")
        return run_id

    def _run_workflow(self, inputs: WorkflowInputs) -> None:
        run_id = inputs.run_id
        try:
            result = self.workflow.execute(inputs, self)
            self.complete(run_id, str(result))
            logger.info(f"Montage generation completed successfully for run {run_id}")
        except Exception as e:
            logger.error(f"Error during background montage generation for run {run_id}: {e}", exc_info=True)
            self.fail(run_id, GENERIC_FAILURE_MESSAGE)
        finally:
            # complete()/fail() arm cleanup; this covers a run left non-terminal
            run = self.store.get(run_id)
            if run is not None and not self.scheduler.is_scheduled(self._cleanup_key(run_id)):
                self._arm_cleanup(run_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def advance(self, run_id: str, progress: float, message: str) -> bool:
        """Move a processing run forward. Progress never decreases."""
        def apply(run: Run) -> Optional[Run]:
            if run.status is not RunStatus.PROCESSING:
                return None
            run.progress = max(run.progress, _clamp_progress(progress))
            run.message = message
            return run

        updated = self.store.transition(run_id, apply)
        if updated is None:
            logger.debug(f"advance() on unknown run {run_id}")
            return False
        return updated.status is RunStatus.PROCESSING

    def complete(self, run_id: str, result_path: str) -> bool:
        def apply(run: Run) -> Optional[Run]:
            if run.status.is_terminal:
                return None
            run.status = RunStatus.COMPLETED
            run.progress = 100
            run.message = "Montage creation completed!"
            run.result_path = result_path
            return run

        return self._terminal(run_id, apply, RunStatus.COMPLETED)

    def fail(self, run_id: str, message: str = GENERIC_FAILURE_MESSAGE) -> bool:
        def apply(run: Run) -> Optional[Run]:
            if run.status.is_terminal:
                return None
            run.status = RunStatus.FAILED
            run.progress = 0
            run.message = message
            return run

        return self._terminal(run_id, apply, RunStatus.FAILED)

    def _terminal(self, run_id: str, apply, status: RunStatus) -> bool:
        previous = self.store.get(run_id)
        if previous is None:
            return False
        if previous.status.is_terminal:
            logger.warning(f"Run {run_id} is already {previous.status.value}, ignoring {status.value}")
            return False
        updated = self.store.transition(run_id, apply)
        if updated is None or updated.status is not status:
            return False
        self._arm_cleanup(run_id)
        return True

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    @staticmethod
    def _cleanup_key(run_id: str) -> str:
        return f"run:{run_id}"

    def _arm_cleanup(self, run_id: str) -> None:
        self.scheduler.schedule(
            self._cleanup_key(run_id),
            self.retention_seconds,
            lambda: self.cleanup(run_id),
        )

    def cleanup(self, run_id: str) -> bool:
        """Remove a run and every file it owns. False if it was already gone."""
        self.scheduler.cancel(self._cleanup_key(run_id))
        run = self.store.delete(run_id)
        if run is None:
            return False

        _remove_file(run.output_path, "montage")
        if run.result_path and run.result_path != run.output_path:
            _remove_file(run.result_path, "montage")
        _remove_file(run.audio_upload, "uploaded audio")
        logger.info(f"Run {run_id} removed after {self.retention_seconds:.0f}s retention.")
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self, run_id: str) -> Dict[str, Any]:
        run = self.store.get(run_id)
        if run is None:
            raise RunNotFound(f"Run {run_id} not found")
        return run.to_dict()

    def result_path(self, run_id: str) -> Path:
        """
        Finished montage of a completed run, guarded against traversal.

        Raises:
            RunNotFound, RunNotReady, UnsafePathError
        """
        run = self.store.get(run_id)
        if run is None:
            raise RunNotFound(f"Run {run_id} not found")
        if run.status is not RunStatus.COMPLETED or not run.result_path:
            raise RunNotReady(f"Run {run_id} has no finished montage")

        output_root = self.settings.paths.output_dir.resolve()
        candidate = Path(run.result_path).resolve()
        if output_root not in candidate.parents:
            raise UnsafePathError("Invalid result path")
        if not candidate.is_file():
            raise RunNotFound("Montage file not found on server")
        return candidate

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        self.scheduler.shutdown()
