#!/usr/bin/env python3
"""Headless probe for a live drone position feed.

Runs the full tracker (feed adapter, store, evictor, reconciler) against an
in-memory render surface and prints category counts and active tracks at a
fixed interval. Use this to check a feed endpoint or broker without a map.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from dronetrack import ConnectionStatus, InMemorySurface, TrackerConfig, TrackerService  # noqa: E402
from dronetrack.models.category import Category  # noqa: E402

_LOG = logging.getLogger("feed_probe")


@dataclass
class ProbeStats:
    started_at: float
    count_updates: int = 0
    status_changes: int = 0
    peak_active: int = 0
    last_update_at: float | None = None

    def on_counts(self, counts: dict[Category, int]) -> None:
        self.count_updates += 1
        self.last_update_at = time.time()
        self.peak_active = max(self.peak_active, sum(counts.values()))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Headless probe for a drone position feed.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--report-seconds",
        type=float,
        default=5.0,
        help="Print counts every N seconds.",
    )
    parser.add_argument(
        "--feed",
        choices=["websocket", "mqtt"],
        default=None,
        help="Override DRONETRACK_FEED_KIND.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Override DRONETRACK_FEED_URL.",
    )
    parser.add_argument(
        "--tracks",
        action="store_true",
        help="List active tracks with each report.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_summary(stats: ProbeStats, surface: InMemorySurface) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s        : {runtime:.1f}")
    print(f"[probe]   count_updates    : {stats.count_updates}")
    print(f"[probe]   status_changes   : {stats.status_changes}")
    print(f"[probe]   peak_active      : {stats.peak_active}")
    print(f"[probe]   surface_mutations: {surface.mutations}")
    if stats.last_update_at is not None:
        last_update = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(stats.last_update_at))
        print(f"[probe]   last_update      : {last_update}")


async def _run(args: argparse.Namespace, config: TrackerConfig) -> int:
    stats = ProbeStats(started_at=time.time())
    surface = InMemorySurface()
    stop = asyncio.Event()

    def on_status(status: ConnectionStatus) -> None:
        stats.status_changes += 1
        print(f"[probe] feed status: {status}")

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    service = TrackerService(surface, config=config, on_counts=stats.on_counts, on_status=on_status)
    await service.start()
    try:
        while not stop.is_set():
            if args.duration > 0 and (time.time() - stats.started_at) >= args.duration:
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=args.report_seconds)
            except TimeoutError:
                pass
            counts = service.core.counts
            summary = " ".join(f"{category}={count}" for category, count in counts.items())
            print(f"[probe] {summary} markers={len(surface.markers)} trails={len(surface.trails)}")
            if args.tracks:
                for track in service.core.active_tracks():
                    print(
                        f"[probe]   {track.track_id} {track.category} alt={track.altitude_m:.0f}m "
                        f"hdg={track.heading_deg:.0f} reports={track.report_count} "
                        f"for={track.duration_ms / 1000:.0f}s"
                    )
    finally:
        result = await service.stop()
        _LOG.debug("Teardown issued %d surface operations", len(result.applied))

    _print_summary(stats, surface)
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, str] = {}
    if args.feed:
        overrides["feed_kind"] = args.feed
    if args.url:
        overrides["feed_url"] = args.url

    try:
        config = TrackerConfig.from_env(**overrides)
    except Exception as exc:
        print(f"[probe] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    raise SystemExit(_main())
