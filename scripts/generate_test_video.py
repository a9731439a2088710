#!/usr/bin/env python3
"""Generate a synthetic source video for end-to-end vid2live runs.

Produces a 10-second 1920x1080 30fps H.264 video with a 440 Hz tone. The
first half is a fast-moving test pattern and the second half a slowly
drifting gradient, so segment selection has an obvious stable window:
  0-5s   testsrc2 (high motion)
  5-10s  gradient drift (low motion)
"""

import subprocess
import sys
from pathlib import Path


def generate_test_video(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    video_filter = (
        "testsrc2=s=1920x1080:r=30:d=5[v0];"
        "gradients=s=1920x1080:r=30:d=5:speed=0.002[v1];"
        "[v0][v1]concat=n=2:v=1:a=0,format=yuv420p[vout]"
    )
    audio_filter = "sine=f=440:d=10[aout]"

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", video_filter + ";" + audio_filter,
        "-map", "[vout]",
        "-map", "[aout]",
        "-c:v", "libx264",
        "-g", "30",
        "-c:a", "aac",
        "-shortest",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/synthetic.mov")
    generate_test_video(out)
