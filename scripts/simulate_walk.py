#!/usr/bin/env python3
"""
Walk a simulated device toward the reference point against a running ledger API.

The device starts --start-distance meters north of the reference point and
moves --step meters closer per tick. It checks in as soon as it is in range,
then checks out on the way back out.

Run:
    python scripts/simulate_walk.py --user-id <uid> --token <firebase id token>
"""

import argparse
import asyncio
import logging
import os
import sys

# Add the project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_config
from models.session import SessionContext
from services.connectivity import ConnectivityMonitor
from services.ledger_client import HttpLedgerClient
from services.location_providers import ManualLocationProvider
from services.location_sensor import LocationSensorAdapter
from services.presentation import ScreenAction, render_status_content
from services.status_engine import StatusEngine

METERS_PER_DEGREE_LAT = 111_320.0


def _parse_args(argv=None) -> argparse.Namespace:
    config = get_config()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--token", default=os.getenv("FIREBASE_ID_TOKEN"))
    parser.add_argument("--base-url", default=config.ledger_base_url)
    parser.add_argument("--start-distance", type=float, default=config.reference.radius_meters * 2)
    parser.add_argument("--step", type=float, default=config.reference.radius_meters / 4)
    return parser.parse_args(argv)


async def _walk(args: argparse.Namespace) -> int:
    config = get_config()
    reference = config.reference
    provider = ManualLocationProvider()
    sensor = LocationSensorAdapter(provider, config.watch_options)
    connectivity = ConnectivityMonitor(probe_url=config.connectivity_probe_url)
    await connectivity.probe()

    def show(snapshot):
        content = render_status_content(snapshot, reference)
        print(f"[{snapshot.status.value}] {content.title} - {content.message} (distance {content.distance_text})")

    async with HttpLedgerClient(args.base_url, id_token=args.token) as ledger:
        engine = StatusEngine(
            SessionContext(user_id=args.user_id),
            reference,
            ledger,
            sensor,
            connectivity=connectivity,
            listener=show,
        )
        async with engine:
            offsets = []
            distance = args.start_distance
            while distance > 0:
                offsets.append(distance)
                distance -= args.step
            offsets.append(0.0)
            offsets.extend(reversed(offsets[:-1]))

            for offset in offsets:
                provider.push_position(
                    reference.point.latitude + offset / METERS_PER_DEGREE_LAT,
                    reference.point.longitude,
                )
                content = render_status_content(engine.snapshot, reference)
                if not content.button_enabled:
                    continue
                if content.action == ScreenAction.CHECK_IN and offset == 0.0:
                    outcome = await engine.check_in()
                elif content.action == ScreenAction.CHECK_OUT and offset >= args.start_distance:
                    outcome = await engine.check_out()
                else:
                    continue
                print(f"  -> {outcome.action.value}: {'ok' if outcome.accepted else outcome.message}")

    return 0


def main(argv=None) -> int:
    logging.basicConfig(level=get_config().log_level)
    return asyncio.run(_walk(_parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
