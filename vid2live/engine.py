"""Orchestrator — runs one conversion job per source video."""

import asyncio
import logging
import subprocess
import tempfile
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from vid2live import ffutil
from vid2live.analyzers.frames import extract_key_frame
from vid2live.analyzers.motion import analysis_size, select_segment
from vid2live.classifier import ClassifiedError, ErrorInfo, classify, classify_error
from vid2live.editors.export import ClipExporter
from vid2live.editors.pairing import ContentPairing, verify_pair
from vid2live.errors import ExportFailedError, LivePhotoError, PermissionDeniedError, VideoTooShortError
from vid2live.models import MediaPair, ProbeResult, TimeRange
from vid2live.persistence import PersistenceOrchestrator, SaveOutcome
from vid2live.prober import is_too_short, probe_source
from vid2live.profiles import QualityProfile
from vid2live.store import AssetStore

ProgressCallback = Callable[[float, int], None]


class JobState(Enum):
    IDLE = "idle"
    PROBING = "probing"
    SELECTING_SEGMENT = "selecting_segment"
    EXTRACTING_FRAME = "extracting_frame"
    EXPORTING = "exporting"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Fraction of a job's work done when it enters each state
PHASE_PROGRESS = {
    JobState.IDLE: 0.0,
    JobState.PROBING: 0.0,
    JobState.SELECTING_SEGMENT: 0.1,
    JobState.EXTRACTING_FRAME: 0.35,
    JobState.EXPORTING: 0.45,
    JobState.PERSISTING: 0.8,
    JobState.COMPLETED: 1.0,
    JobState.FAILED: 1.0,
    JobState.CANCELLED: 1.0,
}


class CancellationToken:
    """Cooperative cancellation flag, safe to set from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class JobCancelled(Exception):
    pass


@dataclass
class ConversionJob:
    index: int
    source: Path
    profile: QualityProfile
    state: JobState = JobState.IDLE
    probe: ProbeResult | None = None
    time_range: TimeRange | None = None
    content_id: str | None = None
    outcome: SaveOutcome | None = None
    error: ClassifiedError | None = None
    warnings: list[ErrorInfo] = field(default_factory=list)

    @property
    def asset_id(self) -> str | None:
        return self.outcome.asset.id if self.outcome else None


@dataclass
class BatchResult:
    jobs: list[ConversionJob]

    @property
    def asset_ids(self) -> list[str]:
        return [j.asset_id for j in self.jobs if j.asset_id is not None]

    @property
    def error(self) -> ClassifiedError | None:
        """The first hard failure, by job index."""
        return next((j.error for j in self.jobs if j.state is JobState.FAILED), None)

    @property
    def ok(self) -> bool:
        return self.error is None


class Converter:
    """Converts source videos into live photo pairs stored in *store*."""

    def __init__(
        self,
        store: AssetStore,
        *,
        exporter: ClipExporter | None = None,
        candidate_frames: int = 1,
        max_concurrency: int = 2,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.log = logger or logging.getLogger(__name__)
        self.exporter = exporter or ClipExporter(logger=self.log)
        self.candidate_frames = candidate_frames
        self.max_concurrency = max(1, max_concurrency)

    async def _verify(self, image_path: Path, clip_path: Path) -> None:
        """Read the exported pair back; a clip that lost its pairing fails the export."""
        try:
            problems = await asyncio.to_thread(verify_pair, image_path, clip_path)
        except (subprocess.CalledProcessError, OSError, ValueError) as e:
            raise ExportFailedError(f"Could not read back exported pair: {e}") from e
        if problems:
            raise ExportFailedError("Pairing metadata mismatch: " + "; ".join(problems))

    async def run_job(
        self,
        job: ConversionJob,
        orchestrator: PersistenceOrchestrator,
        token: CancellationToken,
        on_state: Callable[[ConversionJob], None] | None = None,
    ) -> ConversionJob:
        """Drive *job* through every phase; never raises."""

        def enter(state: JobState) -> None:
            if state not in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED) and token.cancelled:
                raise JobCancelled()
            job.state = state
            self.log.debug("job %d: %s", job.index, state.value)
            if on_state:
                on_state(job)

        with tempfile.TemporaryDirectory(prefix="vid2live_job_") as tmpdir:
            workdir = Path(tmpdir)
            try:
                enter(JobState.PROBING)
                probe = await asyncio.to_thread(probe_source, job.source)
                job.probe = probe
                if is_too_short(probe):
                    job.warnings.append(classify(VideoTooShortError(f"{probe.duration:.2f}s")))

                enter(JobState.SELECTING_SEGMENT)
                size = analysis_size(probe)
                job.time_range = await asyncio.to_thread(
                    select_segment,
                    probe,
                    job.profile,
                    lambda t: ffutil.read_gray_frame(job.source, t, size),
                )

                enter(JobState.EXTRACTING_FRAME)
                still = await asyncio.to_thread(
                    extract_key_frame,
                    lambda t: ffutil.render_still(job.source, t),
                    job.time_range,
                    self.candidate_frames,
                )
                pairing = ContentPairing()
                job.content_id = pairing.content_id
                image_path = workdir / "still.jpg"
                await asyncio.to_thread(pairing.write_still, still, image_path)

                enter(JobState.EXPORTING)
                clip_path = workdir / "clip.mov"
                await asyncio.to_thread(
                    self.exporter.export,
                    job.source,
                    probe,
                    job.time_range,
                    pairing,
                    job.profile,
                    clip_path,
                )
                await self._verify(image_path, clip_path)

                enter(JobState.PERSISTING)
                pair = MediaPair(
                    image_path=image_path,
                    clip_path=clip_path,
                    content_id=pairing.content_id,
                    still_image_time=pairing.still_image_time,
                )
                job.outcome = await orchestrator.persist(pair)
                enter(JobState.COMPLETED)
            except JobCancelled:
                self.log.info("job %d cancelled before %s", job.index, job.state.value)
                enter(JobState.CANCELLED)
            except LivePhotoError as e:
                self.log.error("job %d failed while %s: %s", job.index, job.state.value, e)
                job.error = classify_error(e)
                enter(JobState.FAILED)
            except Exception as e:
                # A job failure must not take the batch down with it
                self.log.exception("job %d failed unexpectedly while %s", job.index, job.state.value)
                job.error = classify_error(e)
                enter(JobState.FAILED)
        return job

    async def convert_batch(
        self,
        sources: Iterable[Path],
        profile: QualityProfile,
        *,
        on_progress: ProgressCallback | None = None,
        on_complete: Callable[[BatchResult], None] | None = None,
        token: CancellationToken | None = None,
    ) -> BatchResult:
        """Convert every source, running up to ``max_concurrency`` jobs at once.

        Authorization is checked once for the whole batch; a denial fails
        every job without any work being attempted.
        """
        token = token or CancellationToken()
        jobs = [ConversionJob(index=i, source=Path(s), profile=profile) for i, s in enumerate(sources)]
        fractions = [0.0] * len(jobs)

        def on_state(job: ConversionJob) -> None:
            fractions[job.index] = PHASE_PROGRESS[job.state]
            if on_progress:
                on_progress(sum(fractions) / len(fractions), job.index)

        self.log.info("Converting %d video(s) with profile %s", len(jobs), profile.name)
        authorized = await asyncio.to_thread(self.store.check_authorization) if jobs else True

        if not authorized:
            self.log.error("Library access denied; failing %d job(s)", len(jobs))
            for job in jobs:
                job.error = classify_error(PermissionDeniedError("Library write access denied"))
                job.state = JobState.FAILED
                on_state(job)
        else:
            orchestrator = PersistenceOrchestrator(self.store, asyncio.Lock(), logger=self.log)
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def bounded(job: ConversionJob) -> ConversionJob:
                async with semaphore:
                    return await self.run_job(job, orchestrator, token, on_state)

            await asyncio.gather(*(bounded(job) for job in jobs))

        result = BatchResult(jobs=jobs)
        if result.ok:
            self.log.info("Batch complete: %d asset(s) saved", len(result.asset_ids))
        if on_complete:
            on_complete(result)
        return result

    def convert(
        self,
        sources: Iterable[Path],
        profile: QualityProfile,
        **kwargs,
    ) -> BatchResult:
        """Blocking wrapper around :meth:`convert_batch`."""
        return asyncio.run(self.convert_batch(sources, profile, **kwargs))
