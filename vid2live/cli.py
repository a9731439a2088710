"""Thin CLI entry point — builds a Manifest and calls the engine."""

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path

from vid2live import ffutil
from vid2live.classifier import classify, format_for_display
from vid2live.compat import check_compatibility
from vid2live.diagnostics import LOG_FORMAT, DiagnosticsCollector
from vid2live.editors.export import ClipExporter
from vid2live.editors.pairing import verify_pair
from vid2live.engine import Converter
from vid2live.errors import LivePhotoError
from vid2live.manifest import Manifest, load_manifest
from vid2live.prober import probe_source
from vid2live.profiles import DEFAULT_PROFILE, PROFILES, get_profile
from vid2live.store import LibraryAssetStore

DEFAULT_LIBRARY = Path("~/Pictures/vid2live").expanduser()


def configure_logging() -> None:
    level = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }.get(os.getenv("LOG_LEVEL", "info").lower(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, style="{", datefmt="%H:%M:%S")


def _convert(args: argparse.Namespace) -> int:
    if args.manifest:
        try:
            m = load_manifest(args.manifest)
        except (OSError, ValueError) as e:
            print(f"Error: invalid manifest: {e}", file=sys.stderr)
            return 1
    elif args.videos:
        m = Manifest(
            inputs=args.videos,
            library=args.library,
            quality=args.quality,
            candidate_frames=args.candidates,
            include_audio=not args.no_audio,
            max_concurrency=args.jobs,
        )
    else:
        print("Error: provide VIDEO arguments or --manifest.", file=sys.stderr)
        return 1

    collector = None
    if args.diagnostics:
        collector = DiagnosticsCollector()
        logging.getLogger("vid2live").addHandler(collector)

    converter = Converter(
        LibraryAssetStore(m.library),
        exporter=ClipExporter(include_audio=m.include_audio),
        candidate_frames=m.candidate_frames,
        max_concurrency=m.max_concurrency,
    )

    def on_progress(fraction: float, index: int) -> None:
        print(f"  [{fraction:4.0%}] {m.inputs[index].name}")

    result = converter.convert(m.inputs, get_profile(m.quality), on_progress=on_progress)

    print()
    for job in result.jobs:
        if job.asset_id:
            note = "" if job.outcome.linked else " (not linked)"
            print(f"{job.source.name}: saved {job.asset_id}{note}")
        elif job.error:
            print(f"{job.source.name}: {job.error.info.title}")
        else:
            print(f"{job.source.name}: {job.state.value}")
        for warning in job.warnings:
            print(f"  warning: {warning.title}")

    if result.error:
        print()
        print(format_for_display(result.error.info), file=sys.stderr)

    if collector is not None:
        args.diagnostics.write_text(collector.report({"Quality": m.quality, "Library": str(m.library)}))
        print(f"Diagnostics written to {args.diagnostics}")

    return 0 if result.ok else 1


def _check(args: argparse.Namespace) -> int:
    report = check_compatibility(args.video)
    for issue in report.issues:
        print(f"  {issue.severity.value:8} {issue.message}")
    print("Compatible" if report.compatible else "Not compatible")
    return 0 if report.compatible else 1


def _probe(args: argparse.Namespace) -> int:
    try:
        p = probe_source(args.video)
    except LivePhotoError as e:
        print(format_for_display(classify(e)), file=sys.stderr)
        return 1
    w, h = p.display_size
    print(f"Duration:   {p.duration:.2f}s")
    print(f"Resolution: {w}x{h} (rotation {p.rotation})")
    print(f"Frame rate: {p.fps:.2f}")
    print(f"Video:      {p.codec_video}")
    print(f"Audio:      {p.codec_audio or 'none'}")
    return 0


def _verify(args: argparse.Namespace) -> int:
    store = LibraryAssetStore(args.library)
    try:
        record = store.load_record(args.asset_id)
    except (OSError, ValueError) as e:
        print(f"Error: cannot read asset {args.asset_id}: {e}", file=sys.stderr)
        return 1

    files = {r["role"]: store.root / args.asset_id / r["filename"] for r in record["resources"]}
    try:
        problems = verify_pair(files["photo"], files["pairedVideo"])
    except (KeyError, OSError, ValueError, subprocess.CalledProcessError) as e:
        print(f"Error: cannot verify asset {args.asset_id}: {e}", file=sys.stderr)
        return 1

    for problem in problems:
        print(f"  {problem}")
    print("Not paired" if problems else "Paired")
    return 1 if problems else 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="vid2live",
        description="vid2live — turn short videos into live photos.",
    )
    sub = parser.add_subparsers(dest="command")

    conv = sub.add_parser("convert", help="Convert videos into live photos")
    conv.add_argument("videos", nargs="*", type=Path, help="Input video files")
    conv.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    conv.add_argument("--quality", "-q", choices=sorted(PROFILES), default=DEFAULT_PROFILE, help="Quality profile")
    conv.add_argument("--library", "-l", type=Path, default=DEFAULT_LIBRARY, help="Photo library directory")
    conv.add_argument("--candidates", type=int, default=1, help="Frames scored when picking the still")
    conv.add_argument("--no-audio", action="store_true", help="Drop audio from the clip")
    conv.add_argument("--jobs", "-j", type=int, default=2, help="Videos converted concurrently")
    conv.add_argument("--diagnostics", type=Path, help="Write a diagnostics report to this file")

    check = sub.add_parser("check", help="Check whether a video converts cleanly")
    check.add_argument("video", type=Path)

    probe = sub.add_parser("probe", help="Show video stream information")
    probe.add_argument("video", type=Path)

    verify = sub.add_parser("verify", help="Check that a stored asset's still and clip are paired")
    verify.add_argument("asset_id")
    verify.add_argument("--library", "-l", type=Path, default=DEFAULT_LIBRARY, help="Photo library directory")

    serve = sub.add_parser("serve", help="Launch the HTTP API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--library", "-l", type=Path, default=DEFAULT_LIBRARY, help="Photo library directory")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    configure_logging()
    try:
        ffutil.check_ffmpeg()
    except ffutil.FFmpegNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "serve":
        from vid2live.web import create_app
        app = create_app(library=args.library)
        print(f"vid2live API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    handlers = {"convert": _convert, "check": _check, "probe": _probe, "verify": _verify}
    sys.exit(handlers[args.command](args))
