"""JSON manifest schema — the contract between CLI/API and engine."""

import json
from dataclasses import dataclass
from pathlib import Path

from vid2live.profiles import DEFAULT_PROFILE, PROFILES


@dataclass
class Manifest:
    """A batch conversion request."""

    inputs: list[Path]
    library: Path
    version: str = "1"
    quality: str = DEFAULT_PROFILE
    candidate_frames: int = 1
    include_audio: bool = True
    max_concurrency: int = 2


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file.

    Relative input and library paths are resolved against the manifest's
    own directory.
    """
    path = Path(path)
    data = json.loads(path.read_text())

    if "inputs" not in data or "library" not in data:
        raise ValueError("Manifest must contain 'inputs' and 'library' fields")
    if not isinstance(data["inputs"], list) or not data["inputs"]:
        raise ValueError("'inputs' must be a non-empty list of video paths")

    quality = data.get("quality", DEFAULT_PROFILE)
    if quality not in PROFILES:
        raise ValueError(f"Unknown quality {quality!r}; expected one of {sorted(PROFILES)}")

    candidate_frames = int(data.get("candidate_frames", 1))
    max_concurrency = int(data.get("max_concurrency", 2))
    if candidate_frames < 1 or max_concurrency < 1:
        raise ValueError("'candidate_frames' and 'max_concurrency' must be at least 1")

    base = path.parent

    return Manifest(
        version=str(data.get("version", "1")),
        inputs=[base / p for p in data["inputs"]],
        library=base / data["library"],
        quality=quality,
        candidate_frames=candidate_frames,
        include_audio=bool(data.get("include_audio", True)),
        max_concurrency=max_concurrency,
    )
