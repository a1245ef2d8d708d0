"""Terminal front end for live chroma extraction.

Usage::

    chromatap listen --device 2 --sensitivity 8
    chromatap devices
    chromatap inspect-reference ballade1_features.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import clamp_sensitivity
from .constants import FFT_SIZE, HP_FILTER_CUTOFF, NOTE_NAMES, SAMPLE_RATE
from .errors import CaptureError, ChromaTapError
from .pipeline import ChromaPipeline, FrameResult
from .reference import load_reference

logger = logging.getLogger(__name__)

_LEVELS = " ▁▂▃▄▅▆▇█"
_METER_WIDTH = 20


def _level_char(value: float) -> str:
    index = int(round(max(0.0, min(1.0, value)) * (len(_LEVELS) - 1)))
    return _LEVELS[index]


def format_frame(result: FrameResult) -> str:
    """Render ``result`` as a single line of loudness meter and chroma bars."""
    filled = int(round(result.loudness * _METER_WIDTH))
    meter = "#" * filled + "-" * (_METER_WIDTH - filled)
    bars = " ".join(
        f"{name}{_level_char(value)}" for name, value in zip(NOTE_NAMES, result.chroma)
    )
    marker = "♪" if result.music_detected else " "
    return f"[{meter}] {marker} {bars}"


def _listen(args: argparse.Namespace) -> int:
    import sounddevice as sd  # type: ignore

    from .preferences import default_settings, load_sensitivity, save_sensitivity
    from .spectrum import BlockAnalyzer, downmix

    settings = default_settings()
    if args.sensitivity is None:
        sensitivity = load_sensitivity(settings)
    else:
        sensitivity = save_sensitivity(settings, args.sensitivity)

    pipeline = ChromaPipeline(
        args.sample_rate, n_bins=args.fft_size // 2, sensitivity=sensitivity
    )
    analyzer = BlockAnalyzer(pipeline, hp_cutoff=args.hp_cutoff)

    def callback(indata, frames, _time, status) -> None:
        if status:
            logger.warning("Input stream status: %s", status)
        try:
            result = analyzer(downmix(indata))
        except Exception:
            logger.exception("Failed to process audio block of %d frames", frames)
            return
        print(format_frame(result), end="\r", flush=True)

    try:
        stream = sd.InputStream(
            device=args.device,
            channels=args.channels,
            samplerate=args.sample_rate,
            blocksize=args.fft_size,
            dtype="float32",
            callback=callback,
        )
    except Exception as exc:
        raise CaptureError(f"cannot open input device {args.device}: {exc}") from exc

    logger.info("Listening at sensitivity %.1f (Ctrl+C to quit)", sensitivity)
    with stream:
        try:
            if args.seconds is None:
                while True:
                    sd.sleep(1000)
            else:
                sd.sleep(int(args.seconds * 1000))
        except KeyboardInterrupt:
            pass
    pipeline.reset()
    print()
    return 0


def _devices(_args: argparse.Namespace) -> int:
    import sounddevice as sd  # type: ignore

    print(sd.query_devices())
    return 0


def _inspect_reference(args: argparse.Namespace) -> int:
    frames = load_reference(args.path)
    print(f"{len(frames)} frames")
    if len(frames):
        profile = frames.mean(axis=0)
        print(
            " ".join(f"{name}={value:.2f}" for name, value in zip(NOTE_NAMES, profile))
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chromatap", description="Live microphone chroma extraction."
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    listen = sub.add_parser("listen", help="Show live loudness and chroma bars.")
    listen.add_argument("--device", type=int, default=None, help="Input device index.")
    listen.add_argument("--channels", type=int, default=1)
    listen.add_argument(
        "--sensitivity",
        type=float,
        default=None,
        help="Gain in 1.0-20.0; stored for next time (default: last used).",
    )
    listen.add_argument("--sample-rate", type=int, default=SAMPLE_RATE)
    listen.add_argument("--fft-size", type=int, default=FFT_SIZE)
    listen.add_argument("--hp-cutoff", type=float, default=HP_FILTER_CUTOFF)
    listen.add_argument(
        "--seconds", type=float, default=None, help="Stop after this many seconds."
    )
    listen.set_defaults(func=_listen)

    devices = sub.add_parser("devices", help="List audio devices.")
    devices.set_defaults(func=_devices)

    inspect = sub.add_parser(
        "inspect-reference", help="Validate a reference chroma JSON file."
    )
    inspect.add_argument("path")
    inspect.set_defaults(func=_inspect_reference)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "sensitivity", None) is not None:
        args.sensitivity = clamp_sensitivity(args.sensitivity)
    try:
        return args.func(args)
    except ChromaTapError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
