"""Asset stores that accept a still image + paired clip as one asset."""

import json
import logging
import os
import shutil
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from vid2live.models import AssetRecord

logger = logging.getLogger(__name__)

JPEG_TYPE = "public.jpeg"
QUICKTIME_TYPE = "com.apple.quicktime-movie"

_SIGNATURES = {
    JPEG_TYPE: lambda head: head.startswith(b"\xff\xd8\xff"),
    QUICKTIME_TYPE: lambda head: head[4:8] in (b"ftyp", b"moov", b"mdat", b"wide", b"free"),
}


class StoreError(RuntimeError):
    """A paired write was rejected or failed part way."""
    pass


class AssetStore(ABC):
    """Destination for live photo pairs."""

    @abstractmethod
    def check_authorization(self) -> bool:
        """Whether this process may write to the store."""

    @abstractmethod
    def create_paired_asset(
        self,
        photo_path: Path,
        video_path: Path,
        *,
        photo_type: str | None = None,
        video_type: str | None = None,
    ) -> AssetRecord:
        """Persist the photo and its paired video as a single asset."""


def _check_type_hint(path: Path, type_hint: str | None) -> None:
    if type_hint is None:
        return
    matches = _SIGNATURES.get(type_hint)
    if matches is None:
        raise StoreError(f"Unsupported resource type {type_hint}")
    with path.open("rb") as f:
        head = f.read(12)
    if not matches(head):
        raise StoreError(f"{path.name} is not a valid {type_hint} resource")


class LibraryAssetStore(AssetStore):
    """Stores each pair as a directory ``<root>/<asset id>/`` with a JSON record.

    A pair is assembled in a staging directory and moved into place with a
    single rename, so readers never see half of a pair. Writes through one
    store instance are serialised, including writes from separate threads
    and event loops.
    """

    RECORD_NAME = "asset.json"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._write_lock = threading.Lock()

    def check_authorization(self) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create library %s: %s", self.root, e)
            return False
        return os.access(self.root, os.W_OK | os.X_OK)

    def create_paired_asset(
        self,
        photo_path: Path,
        video_path: Path,
        *,
        photo_type: str | None = None,
        video_type: str | None = None,
    ) -> AssetRecord:
        for path in (photo_path, video_path):
            if not path.is_file():
                raise StoreError(f"Resource missing: {path}")
        _check_type_hint(photo_path, photo_type)
        _check_type_hint(video_path, video_type)

        asset_id = str(uuid.uuid4()).upper()
        with self._write_lock:
            self._commit(asset_id, photo_path, video_path, photo_type, video_type)

        logger.info("Stored asset %s (%s + %s)", asset_id, photo_path.name, video_path.name)
        return AssetRecord(id=asset_id, resources=(photo_path.name, video_path.name))

    def _commit(self, asset_id, photo_path, video_path, photo_type, video_type) -> None:
        staging = self.root / f".staging-{asset_id}"
        final = self.root / asset_id
        try:
            staging.mkdir(parents=True)
            resources = []
            for role, path, type_hint in (
                ("photo", photo_path, photo_type),
                ("pairedVideo", video_path, video_type),
            ):
                shutil.copyfile(path, staging / path.name)
                resources.append({"role": role, "filename": path.name, "type": type_hint})

            record = {
                "id": asset_id,
                "created": datetime.now(timezone.utc).isoformat(timespec="seconds"),
                "resources": resources,
            }
            (staging / self.RECORD_NAME).write_text(json.dumps(record, indent=2), encoding="utf-8")
            os.replace(staging, final)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise StoreError(f"Paired write failed: {e}") from e

    def load_record(self, asset_id: str) -> dict:
        return json.loads((self.root / asset_id / self.RECORD_NAME).read_text(encoding="utf-8"))
