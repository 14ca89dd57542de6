"""Thin CLI entry point — probes, analyzes, exports and previews audio files."""

import argparse
import json
import logging
import sys
import threading
from pathlib import Path

from audiocut import ffutil
from audiocut.analyzers.waveform import DEFAULT_SAMPLE_COUNT, analyze
from audiocut.engine import process
from audiocut.manifest import EncoderConfig, Manifest, load_manifest
from audiocut.models import AudioFormat, AudioSegment, format_timestamp, suggested_output_path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="audiocut",
        description="audiocut — preview, trim and re-encode audio files.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    info = sub.add_parser("info", help="Show audio file metadata")
    info.add_argument("audio", type=Path, help="Input audio file")

    wave = sub.add_parser("waveform", help="Print the RMS envelope of a file")
    wave.add_argument("audio", type=Path, help="Input audio file")
    wave.add_argument("--samples", type=int, default=DEFAULT_SAMPLE_COUNT, help="Envelope length")
    wave.add_argument("--json", action="store_true", help="Emit a JSON array")

    exp = sub.add_parser("export", help="Export a segment or re-encode a file")
    exp.add_argument("audio", nargs="?", type=Path, help="Input audio file")
    exp.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    exp.add_argument("--output", "-o", type=Path, help="Output file path")
    exp.add_argument("--start", type=float, help="Segment start (seconds)")
    exp.add_argument("--end", type=float, help="Segment end (seconds)")
    exp.add_argument(
        "--format",
        choices=[f.value for f in AudioFormat],
        help="Output format (default: from the output extension, else mp3)",
    )
    exp.add_argument("--bitrate", type=int, default=192, help="Output bitrate (kbps)")
    exp.add_argument("--sample-rate", type=int, default=44100, help="Output sample rate (Hz)")

    play = sub.add_parser("play", help="Preview a file until it ends or Ctrl-C")
    play.add_argument("audio", type=Path, help="Input audio file")
    play.add_argument("--volume", type=float, default=0.5, help="Volume 0.0-1.0")
    play.add_argument("--start", type=float, default=0.0, help="Start position (seconds)")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    return parser


def _manifest_from_args(args: argparse.Namespace) -> Manifest:
    fmt = AudioFormat.from_name(args.format) if args.format else None
    output = args.output or suggested_output_path(args.audio, fmt or AudioFormat.MP3)

    segment = None
    if args.start is not None or args.end is not None:
        if args.end is None:
            duration = ffutil.probe(args.audio).duration
            segment = AudioSegment(start_time=args.start, end_time=duration)
        else:
            segment = AudioSegment(start_time=args.start or 0.0, end_time=args.end)

    return Manifest(
        input=args.audio,
        output=output,
        segment=segment,
        encoder=EncoderConfig(format=fmt, bit_rate=args.bitrate, sample_rate=args.sample_rate),
    )


def _cmd_info(args: argparse.Namespace) -> None:
    info = ffutil.probe(args.audio)
    print(f"File:        {info.file_name}")
    print(f"Format:      {info.format}")
    print(f"Duration:    {format_timestamp(info.duration)}")
    print(f"Sample rate: {info.sample_rate} Hz")
    print(f"Channels:    {info.channels}")
    print(f"Bitrate:     {info.bit_rate} kbps")


def _cmd_waveform(args: argparse.Namespace) -> None:
    values = analyze(args.audio, args.samples)
    if args.json:
        print(json.dumps([round(float(v), 6) for v in values]))
        return
    peak = float(values.max()) if len(values) else 0.0
    for i, v in enumerate(values):
        bar = "#" * int(round(40 * v / peak)) if peak > 0 else ""
        print(f"{i:5d} {v:8.5f} {bar}")


def _cmd_export(args: argparse.Namespace) -> None:
    if args.manifest:
        m = load_manifest(args.manifest)
    elif args.audio:
        m = _manifest_from_args(args)
    else:
        print("Error: provide either an AUDIO argument or --manifest.", file=sys.stderr)
        sys.exit(1)

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    result = process(m, on_progress=on_progress)

    print()
    print(f"Done! Output: {result.output_path}")
    print(f"  Duration: {result.duration_original:.3f}s -> {result.duration_final:.3f}s")
    if result.segment:
        print(
            f"  Segment: {format_timestamp(result.segment.start_time)}"
            f" - {format_timestamp(result.segment.end_time)}"
        )


def _cmd_play(args: argparse.Namespace) -> None:
    from audiocut.playback import PlaybackEngine

    finished = threading.Event()
    with PlaybackEngine() as engine:
        engine.on_position_changed(
            lambda snap: print(
                f"\r  {format_timestamp(snap.current_position)}"
                f" / {format_timestamp(snap.total_duration)}",
                end="",
                flush=True,
            )
        )
        engine.on_playback_stopped(finished.set)
        engine.load(args.audio)
        engine.volume = args.volume
        if args.start:
            engine.seek(args.start)
        print(f"Playing {args.audio.name} ({engine.backend.name} backend), Ctrl-C to stop")
        engine.play()
        try:
            finished.wait()
        except KeyboardInterrupt:
            engine.stop()
    print()


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from audiocut.web import create_app
        app = create_app()
        print(f"audiocut web API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    handlers = {
        "info": _cmd_info,
        "waveform": _cmd_waveform,
        "export": _cmd_export,
        "play": _cmd_play,
    }
    try:
        handlers[args.command](args)
    except (FileNotFoundError, ffutil.ProbeError, ffutil.DecodeError, ffutil.EncodingError,
            ffutil.FFmpegNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if isinstance(e, ffutil.EncodingError) and e.stderr:
            print(e.stderr, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
