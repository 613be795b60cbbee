#!/usr/bin/env python3
"""Record check-ins from the command line.

Subcommands:

* ``scan TEXT``   simulate presenting a point whose first record holds TEXT
* ``manual NAME`` record a typed check-in
* ``listen``      wait for scans from a networked reader over MQTT

Every recorded event is printed as one JSON line.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pywtrack import (  # noqa: E402
    CheckInEvent,
    SimulatedTagReader,
    StaticLocationProvider,
    TagKind,
    WTrackClient,
    WTrackConfig,
    WTrackError,
    point_tag,
)


def _print_event(event: CheckInEvent) -> None:
    print(json.dumps(event.model_dump(mode="json"), ensure_ascii=False), flush=True)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Record WTrack check-ins")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--lat", type=float, default=None, help="Latitude to tag events with")
    parser.add_argument("--lon", type=float, default=None, help="Longitude to tag events with")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Simulate presenting a point")
    scan.add_argument("text", help="Text stored in the point's first record")
    scan.add_argument("--kind", default=TagKind.MIFARE.value, help="Tag technology (default: mifare)")

    manual = sub.add_parser("manual", help="Record a typed check-in")
    manual.add_argument("name")
    manual.add_argument("--notes", default=None)

    listen = sub.add_parser("listen", help="Listen for a networked reader")
    listen.add_argument("--count", type=int, default=1, help="Scans to run before exiting")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    coordinate = (args.lat, args.lon) if args.lat is not None and args.lon is not None else None
    location = StaticLocationProvider(coordinate) if coordinate is not None else None

    if args.command == "scan":
        reader = SimulatedTagReader(auto_present=(point_tag(args.text, kind=TagKind(args.kind)),))
        async with WTrackClient(reader=reader, location_provider=location, on_check_in=_print_event) as client:
            outcome = await client.start_scan()
        if not outcome.succeeded:
            print(outcome.message, file=sys.stderr)
            return 1
        print(outcome.message, file=sys.stderr)
        return 0

    if args.command == "manual":
        config = WTrackConfig.from_env(strict_manual_entry=True)
        async with WTrackClient(config, location_provider=location, on_check_in=_print_event) as client:
            client.add_manual_check_in(args.name, notes=args.notes)
        return 0

    config = WTrackConfig.from_env(mqtt_enabled=True)
    async with WTrackClient(config, location_provider=location, on_check_in=_print_event) as client:
        for _ in range(args.count):
            outcome = await client.start_scan()
            print(outcome.message, file=sys.stderr)
    return 0


def main() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        sys.exit(asyncio.run(run(args)))
    except WTrackError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
