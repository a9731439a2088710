"""Content pairing — the shared identifier that links a still to its clip."""

import uuid
from pathlib import Path

from PIL import ExifTags, Image, UnidentifiedImageError

from vid2live import ffutil, makernote
from vid2live.errors import ImageProcessingFailedError

CONTENT_ID_FIELD = "17"
STILL_IMAGE_TIME_FIELD = "21"

LIVE_PHOTO_KEY = "com.apple.quicktime.live-photo"
CONTENT_ID_KEY = "com.apple.quicktime.content.identifier"
STILL_IMAGE_TIME_KEY = "com.apple.quicktime.still-image-time"

JPEG_QUALITY = 90


def mint_content_identifier() -> str:
    return str(uuid.uuid4()).upper()


class ContentPairing:
    """One identifier and still-image time, written to both halves of a pair."""

    def __init__(self, content_id: str | None = None, still_image_time: int = 0) -> None:
        self.content_id = content_id or mint_content_identifier()
        self.still_image_time = still_image_time

    def image_metadata(self) -> dict[str, str | int]:
        return {
            CONTENT_ID_FIELD: self.content_id,
            STILL_IMAGE_TIME_FIELD: self.still_image_time,
        }

    def clip_metadata(self) -> dict[str, str]:
        return {
            LIVE_PHOTO_KEY: "1",
            CONTENT_ID_KEY: self.content_id,
            STILL_IMAGE_TIME_KEY: str(self.still_image_time),
        }

    def write_still(self, image: Image.Image, output_path: Path) -> Path:
        """Encode *image* as a JPEG carrying the maker note fields."""
        exif = Image.Exif()
        exif[ExifTags.IFD.Exif] = {
            ExifTags.Base.MakerNote: makernote.encode(self.image_metadata()),
        }
        try:
            image.convert("RGB").save(output_path, "JPEG", quality=JPEG_QUALITY, exif=exif)
        except OSError as e:
            raise ImageProcessingFailedError(f"Could not write still {output_path}: {e}") from e
        return output_path

    def rewrite_still(self, source_path: Path, output_path: Path) -> Path:
        """Decode *source_path* and write a fresh JPEG with metadata re-applied."""
        try:
            with Image.open(source_path) as image:
                image.load()
                return self.write_still(image, output_path)
        except (OSError, UnidentifiedImageError) as e:
            raise ImageProcessingFailedError(f"Could not re-derive still from {source_path}: {e}") from e


def read_still_metadata(path: Path) -> dict[str, makernote.Value]:
    """Maker note fields of a JPEG, or an empty dict if it carries none."""
    with Image.open(path) as image:
        exif_ifd = image.getexif().get_ifd(ExifTags.IFD.Exif)
    raw = exif_ifd.get(ExifTags.Base.MakerNote)
    if raw is None:
        return {}
    if isinstance(raw, tuple):
        raw = bytes(raw)
    return makernote.decode(raw)


def verify_pair(image_path: Path, clip_path: Path) -> list[str]:
    """Read both halves back and list where their pairing metadata disagrees.

    An empty list means the still and clip carry the same content identifier
    and still-image time. ffprobe and Pillow errors propagate.
    """
    still = read_still_metadata(image_path)
    clip = ffutil.read_clip_metadata(clip_path)
    problems = []

    content_id = still.get(CONTENT_ID_FIELD)
    if not content_id:
        problems.append("still has no content identifier")
    elif clip.get(CONTENT_ID_KEY) != content_id:
        problems.append(f"clip identifier {clip.get(CONTENT_ID_KEY)!r} does not match still {content_id!r}")

    still_time = still.get(STILL_IMAGE_TIME_FIELD)
    if still_time is None or clip.get(STILL_IMAGE_TIME_KEY) != str(still_time):
        problems.append(
            f"still-image time differs (still {still_time!r}, clip {clip.get(STILL_IMAGE_TIME_KEY)!r})"
        )
    return problems
