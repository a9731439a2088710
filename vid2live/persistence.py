"""Persistence orchestrator — paired write with a three-tier fallback chain.

PRIMARY writes the pair as produced, with explicit resource types. BACKUP
re-derives both files with metadata applied from scratch and writes without
types. ULTRA_SIMPLE drops all pairing metadata and writes the clip with its
first frame, which saves *something* but is not a linked live photo.
"""

import asyncio
import logging
import subprocess
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from vid2live import ffutil
from vid2live.editors.pairing import JPEG_QUALITY, ContentPairing
from vid2live.errors import CreationFailedError, LivePhotoError, SaveFailedError
from vid2live.models import AssetRecord, MediaPair
from vid2live.store import JPEG_TYPE, QUICKTIME_TYPE, AssetStore, StoreError


class SaveTier(Enum):
    PRIMARY = "primary"
    BACKUP = "backup"
    ULTRA_SIMPLE = "ultra_simple"


@dataclass(frozen=True)
class SaveOutcome:
    asset: AssetRecord
    tier: SaveTier

    @property
    def linked(self) -> bool:
        """False when the pair was saved without its pairing metadata."""
        return self.tier is not SaveTier.ULTRA_SIMPLE


@dataclass
class _Staged:
    photo: Path
    video: Path
    photo_type: str | None = None
    video_type: str | None = None


_TIER_ERRORS = (LivePhotoError, StoreError, OSError, subprocess.CalledProcessError, ffutil.FrameReadError)


def _stage_names(pair: MediaPair, workdir: Path) -> tuple[Path, Path]:
    stem = f"IMG_{pair.content_id.split('-')[0]}"
    return workdir / f"{stem}.JPG", workdir / f"{stem}.MOV"


def stage_primary(pair: MediaPair, workdir: Path) -> _Staged:
    photo, video = _stage_names(pair, workdir)
    photo.write_bytes(pair.image_bytes())
    video.write_bytes(pair.clip_bytes())
    return _Staged(photo, video, photo_type=JPEG_TYPE, video_type=QUICKTIME_TYPE)


def stage_backup(pair: MediaPair, workdir: Path) -> _Staged:
    photo, video = _stage_names(pair, workdir)
    pairing = ContentPairing(pair.content_id, pair.still_image_time)
    pairing.rewrite_still(pair.image_path, photo)
    ffutil.remux_with_metadata(pair.clip_path, video, pairing.clip_metadata())
    return _Staged(photo, video)


def stage_ultra_simple(pair: MediaPair, workdir: Path) -> _Staged:
    photo, video = _stage_names(pair, workdir)
    image = ffutil.render_still(pair.clip_path, 0.0)
    image.convert("RGB").save(photo, "JPEG", quality=JPEG_QUALITY)
    ffutil.remux_with_metadata(pair.clip_path, video, {})
    return _Staged(photo, video)


_STAGERS = {
    SaveTier.PRIMARY: stage_primary,
    SaveTier.BACKUP: stage_backup,
    SaveTier.ULTRA_SIMPLE: stage_ultra_simple,
}


class PersistenceOrchestrator:
    """Commits media pairs to an asset store.

    *write_gate* serialises store writes; share one lock between all jobs
    writing to the same store.
    """

    def __init__(
        self,
        store: AssetStore,
        write_gate: asyncio.Lock | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.write_gate = write_gate or asyncio.Lock()
        self.log = logger or logging.getLogger(__name__)

    async def _attempt(self, tier: SaveTier, pair: MediaPair) -> AssetRecord:
        with tempfile.TemporaryDirectory(prefix=f"vid2live_{tier.value}_") as tmpdir:
            staged = await asyncio.to_thread(_STAGERS[tier], pair, Path(tmpdir))
            async with self.write_gate:
                record = await asyncio.to_thread(
                    self.store.create_paired_asset,
                    staged.photo,
                    staged.video,
                    photo_type=staged.photo_type,
                    video_type=staged.video_type,
                )
        if not record.id:
            raise CreationFailedError(f"Store returned no asset identifier ({tier.value})")
        return record

    async def persist(self, pair: MediaPair) -> SaveOutcome:
        """Try each tier in order and return the first success."""
        failures: list[BaseException] = []
        for tier in SaveTier:
            try:
                record = await self._attempt(tier, pair)
            except _TIER_ERRORS as e:
                self.log.warning("%s save failed: %s", tier.value, e)
                failures.append(e)
                continue

            if tier is SaveTier.ULTRA_SIMPLE:
                self.log.warning("Saved %s without live pairing metadata", record.id)
            else:
                self.log.info("Saved %s via %s tier", record.id, tier.value)
            return SaveOutcome(asset=record, tier=tier)

        last = failures[-1]
        if all(isinstance(e, CreationFailedError) for e in failures):
            raise CreationFailedError(f"No tier produced an asset: {last}") from last
        raise SaveFailedError(f"All {len(failures)} save tiers failed; last error: {last}") from last
