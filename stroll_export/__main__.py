"""
================================================================================
STROLL EXPORT - COMMAND LINE
================================================================================
Runs the edit-and-export pipeline on local files.

Reads STROLL_* settings from the environment or a .env file.

Usage:
    python -m stroll_export probe
    python -m stroll_export describe --filter vintage --brightness 20
    python -m stroll_export export photo.jpg --kind photo --filter warm --text "Hello"
    python -m stroll_export export clip.mov --kind video --trim 1.5 8 --music song.mp3
================================================================================
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import ExportConfig
from .descriptor import FILTER_NAMES, IDENTITY, describe
from .models import Adjustments, MediaAsset, MediaKind, PickedFile
from .orchestrator import ExportOrchestrator
from .persistence import AssetPersistenceGuard
from .session import EditSession


def _add_adjustment_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--filter", default=IDENTITY, help=f"Quick filter ({', '.join(FILTER_NAMES)})")
    parser.add_argument("--brightness", type=int, default=0, help="-100 to 100")
    parser.add_argument("--contrast", type=float, default=1.0, help="0 to 2")
    parser.add_argument("--saturation", type=float, default=1.0, help="0 to 2")
    parser.add_argument("--hue", type=float, default=0.0, help="-360 to 360 degrees")


def _adjustments(args: argparse.Namespace) -> Adjustments:
    return Adjustments(
        brightness=args.brightness,
        contrast=args.contrast,
        saturation=args.saturation,
        hue=args.hue,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stroll_export", description="STROLL media export pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("probe", help="Check whether the compositing service is reachable")

    describe_parser = sub.add_parser("describe", help="Print the transform descriptor")
    _add_adjustment_args(describe_parser)

    export_parser = sub.add_parser("export", help="Export a media file")
    export_parser.add_argument("path", type=Path)
    export_parser.add_argument("--kind", choices=[MediaKind.PHOTO.value, MediaKind.VIDEO.value], required=True)
    _add_adjustment_args(export_parser)
    export_parser.add_argument("--music", type=Path, help="Background audio track (video only)")
    export_parser.add_argument("--trim", nargs=2, type=float, metavar=("START", "END"))
    export_parser.add_argument("--text", action="append", default=[], help="Text overlay (repeatable)")
    export_parser.add_argument("--sticker", action="append", default=[], help="Emoji sticker (repeatable)")
    return parser


async def run_probe(config: ExportConfig) -> int:
    orchestrator = ExportOrchestrator(config)
    available = await orchestrator.prepare()
    print(json.dumps({"server": config.processing_server_url, "available": available}))
    return 0 if available else 1


def run_describe(args: argparse.Namespace) -> int:
    descriptor = describe(args.filter, _adjustments(args))
    print(json.dumps({"filter": descriptor.filter_id, "descriptor": descriptor.as_list(), "css": descriptor.as_css()}))
    return 0


async def run_export(args: argparse.Namespace, config: ExportConfig) -> int:
    config.ensure_documents_dir()
    guard = AssetPersistenceGuard(config.documents_dir)

    picked = PickedFile(uri=str(args.path)).to_asset(args.kind)
    session = EditSession(asset=await guard.intake(picked))
    session.select_filter(args.filter)
    session.adjustments = _adjustments(args)

    for index, text in enumerate(args.text):
        session.add_text(text, x=20, y=20 + index * 40)
    for index, emoji in enumerate(args.sticker):
        session.add_sticker(emoji, x=20 + index * 60, y=20)
    if args.trim:
        session.set_trim(*args.trim)
    if args.music:
        session.set_audio(MediaAsset.from_picker(str(args.music), MediaKind.AUDIO))

    orchestrator = ExportOrchestrator(config)
    await orchestrator.prepare()
    result = await orchestrator.submit(session)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    config = ExportConfig.from_env()

    if args.command == "probe":
        return asyncio.run(run_probe(config))
    if args.command == "describe":
        return run_describe(args)
    return asyncio.run(run_export(args, config))


if __name__ == "__main__":
    sys.exit(main())
