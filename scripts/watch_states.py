#!/usr/bin/env python3
"""Passive watcher for Home Assistant state as seen by pyhasync.

This script connects with ``HASYNC_BASE_URL`` / ``HASYNC_ACCESS_TOKEN``,
loads every light, cover and switch, then prints each entity whose cached
state changes. Use it to check decoding and capability detection against a
live instance without any control surface attached.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyhasync import CachedState, CapabilitySet, HaSyncClient, HaSyncConfig, HaSyncError  # noqa: E402

_LOG = logging.getLogger("watch_states")


@dataclass
class WatchStats:
    started_at: float
    changes: int = 0
    last_change_at: float | None = None


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print Home Assistant state changes decoded by pyhasync.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--entity",
        action="append",
        default=[],
        help="Only print this entity id (repeatable).",
    )
    parser.add_argument(
        "--capabilities",
        action="store_true",
        help="Print the resolved capability set of every entity after connecting.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _format_state(state: CachedState) -> str:
    parts = [f"state={state.state}", f"on={state.is_on}"]
    if state.brightness:
        parts.append(f"bri={state.brightness}")
    parts.append(f"ct={state.color_temp_mired}m/{state.color_temp_kelvin}K")
    parts.append(f"hs=({state.hue:.1f},{state.saturation:.1f})")
    if state.position is not None:
        parts.append(f"pos={state.position}")
    if state.tilt is not None:
        parts.append(f"tilt={state.tilt}")
    return " ".join(parts)


def _format_caps(caps: CapabilitySet) -> str:
    names = (
        "on_off",
        "brightness",
        "color_temp",
        "hue_saturation",
        "position",
        "tilt_position",
        "tilt_buttons",
        "basic",
    )
    flags = [name for name in names if getattr(caps, name)]
    return ",".join(flags) or "-"


async def _watch(args: argparse.Namespace) -> int:
    config = HaSyncConfig.from_env()
    stats = WatchStats(started_at=time.time())
    wanted = {entity.strip().lower() for entity in args.entity}
    client: HaSyncClient | None = None

    def on_entity_changed(entity_id: str) -> None:
        if wanted and entity_id not in wanted:
            return
        stats.changes += 1
        stats.last_change_at = time.time()
        assert client is not None
        ts_text = time.strftime("%H:%M:%S", time.localtime(stats.last_change_at))
        print(f"[watch] {ts_text} {entity_id} {_format_state(client.get_display_state(entity_id))}")

    async with HaSyncClient(config, on_entity_changed=on_entity_changed) as client:
        outcome = await client.connect()
        if not outcome.ok:
            print(f"[watch] Connect failed: {outcome.message}", file=sys.stderr)
            return 2

        if args.capabilities:
            for entity_id in client.known_entity_ids():
                print(f"[watch] caps {entity_id}: {_format_caps(client.get_capabilities(entity_id))}")
            for area_id, name in client.areas_with_lights():
                print(f"[watch] area {name}: {', '.join(client.lights_in_area(area_id))}")

        print("[watch] Listening. Ctrl+C to stop.")
        try:
            while args.duration <= 0 or time.time() - stats.started_at < args.duration:
                await asyncio.sleep(1.0)
                if not client.is_connected:
                    print(f"[watch] Disconnected: {client.health.message}", file=sys.stderr)
                    return 1
        except asyncio.CancelledError:
            pass

    print(f"[watch] {stats.changes} changes in {time.time() - stats.started_at:.1f}s")
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_watch(args))
    except KeyboardInterrupt:
        return 0
    except HaSyncError as exc:
        print(f"[watch] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
