"""Replay a recorded ride against a speed plan and print the live dashboard.

The input is a JSON file::

    {
      "route": {"points": [[lat, lon], ...], "samples": [[lat, lon, ele], ...]},
      "segments": [{"end_ratio": 0.5, "speed_kmh": 20}, {"speed_kmh": 30}],
      "observations": [{"lat": ..., "lon": ..., "speed_kmh": ..., "timestamp": ...}]
    }

Usage:
    uv run python scripts/replay_ride.py ride.json
    uv run python scripts/replay_ride.py ride.json --tick 1.0 --verbose
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from route_pacer.config import Settings  # noqa: E402
from route_pacer.dashboard.renderer import DashboardRenderer  # noqa: E402
from route_pacer.errors import RoutePacerError  # noqa: E402
from route_pacer.ride.models import PositionObservation  # noqa: E402
from route_pacer.route.models import ElevationSample, GeoPoint  # noqa: E402
from route_pacer.web.service import PlannerService  # noqa: E402


def _load_plan(svc: PlannerService, data: dict) -> None:
    route = data["route"]
    points = [GeoPoint(lat=p[0], lon=p[1]) for p in route["points"]]
    samples = [ElevationSample(lat=s[0], lon=s[1], elevation_m=s[2]) for s in route.get("samples", [])]
    svc.set_route(points, route.get("distances_m"), samples)

    model = svc.model
    entries = data.get("segments", [])
    for _ in entries[1:]:
        model.add_segment()
    for i, entry in enumerate(entries):
        if "speed_kmh" in entry:
            model.set_speed(i, float(entry["speed_kmh"]))
    # Boundaries are clamped against their neighbours, so sweep both ways.
    edges = [(i, float(s["end_ratio"])) for i, s in enumerate(entries[:-1]) if "end_ratio" in s]
    for i, ratio in edges + edges[::-1]:
        model.update_boundary(i, ratio, side="end")


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay a recorded ride against a speed plan")
    ap.add_argument("path", help="JSON file with route, segments and observations")
    ap.add_argument("--tick", type=float, default=1.0, help="Wall-clock tick interval in seconds")
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    with open(args.path, encoding="utf-8") as f:
        data = json.load(f)

    observations = [PositionObservation.from_dict(o) for o in data.get("observations", [])]
    if not observations:
        print("No observations to replay.", file=sys.stderr)
        sys.exit(1)

    svc = PlannerService(Settings.from_env())
    try:
        _load_plan(svc, data)
    except (RoutePacerError, ValueError) as exc:
        print(f"Invalid plan: {exc}", file=sys.stderr)
        sys.exit(1)

    total = svc.projection.total_duration()
    print(f"Planned {svc.geometry.total_distance_km:.2f} km in {total}")

    renderer = DashboardRenderer()
    tracker = svc.tracker
    t = observations[0].timestamp
    tracker.start(t)
    for obs in observations:
        while t + args.tick <= obs.timestamp:
            t += args.tick
            tracker.handle_tick(t)
        tracker.handle_observation(obs)
        view = renderer.render(tracker.status(obs.timestamp))
        print(
            f"  {view['total_time']}  moving {view['moving_time']}  "
            f"{view['speed']:>10}  {view['progress_pct']:>3}%  ETT {view['ett']}"
        )
    tracker.stop(observations[-1].timestamp)

    final = renderer.render(tracker.status(observations[-1].timestamp))
    print()
    print(f"Ride time    {final['total_time']}")
    print(f"Moving time  {final['moving_time']}")
    print(f"Distance     {final['distance_km']} km")
    print(f"Avg speed    {final['avg_speed']}")


if __name__ == "__main__":
    main()
