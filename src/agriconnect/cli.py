"""
AgriConnect CLI entrypoint.

Quick local inspection of a marketplace store without a client app: discovery
queries, notification feeds (one-shot or polled), plus `serve` to run the API.
Reads go through `agriconnect.services.marketplace.Marketplace`, so results match
what the HTTP API returns.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable

from pydantic import BaseModel

from agriconnect.config.settings import get_settings
from agriconnect.core.geo import GeoPoint, distance_km
from agriconnect.core.logging import configure_logging
from agriconnect.core.polling import Poller
from agriconnect.domain.models import EquipmentView, JobView, Notification, WorkerView
from agriconnect.services.marketplace import Marketplace
from agriconnect.store.repository import JsonFileRepository, build_repository

logger = logging.getLogger(__name__)


def _marketplace(args: argparse.Namespace) -> Marketplace:
    settings = get_settings()
    if args.store:
        repo = JsonFileRepository(Path(args.store).expanduser().resolve())
    else:
        if settings.store.backend == "memory":
            logger.warning("Store backend is 'memory'; the CLI will see an empty marketplace (use --store)")
        repo = build_repository(settings)
    return Marketplace(repo, settings)


def _print_json(items: Iterable[BaseModel]) -> None:
    print(json.dumps([i.model_dump(mode="json", by_alias=True) for i in items], ensure_ascii=False, indent=2))


def _cmd_distance(args: argparse.Namespace) -> int:
    a = GeoPoint(lat=args.from_lat, lng=args.from_lng)
    b = GeoPoint(lat=args.to_lat, lng=args.to_lng)
    print(f"{distance_km(a, b):.3f} km")
    return 0


def _print_workers(workers: list[WorkerView]) -> None:
    for w in workers:
        status = "available" if w.available else "busy"
        print(f"{w.distance:>6.1f} km  {w.name} ({w.location})  {status}  {w.phone}")


def _print_jobs(jobs: list[JobView]) -> None:
    for j in jobs:
        where = f"{j.distance:>6.1f} km" if j.distance is not None else f"{j.status:>9}"
        print(f"{where}  {j.work_type} @ {j.farmer_name}  wage={j.wage}  {j.location}  [{j.id}]")


def _print_equipment(items: list[EquipmentView]) -> None:
    for e in items:
        status = "available" if e.available else "rented"
        print(f"{e.distance:>6.1f} km  {e.name} ({e.type})  {e.rent_per_day}/day  {status}  {e.location}")


def _run_discovery(args: argparse.Namespace, query: Callable[[], list], render: Callable[[list], None]) -> int:
    """Run a discovery query once, or re-run it on the discovery interval with `--watch`."""

    def show(items: list) -> None:
        if args.json:
            _print_json(items)
        else:
            render(items)
            if args.watch:
                print("---", flush=True)

    if not args.watch:
        show(query())
        return 0

    poller = Poller(
        query,
        show,
        interval_seconds=get_settings().polling.discovery_interval_seconds,
        name=f"discovery:{args.command}",
    )
    try:
        poller.run_forever()
    except KeyboardInterrupt:
        poller.stop()
    return 0


def _cmd_workers(args: argparse.Namespace) -> int:
    return _run_discovery(
        args, lambda: _marketplace(args).list_workers(args.lat, args.lng, args.radius, sort=args.sort), _print_workers
    )


def _cmd_jobs(args: argparse.Namespace) -> int:
    if not args.farmer_id and (args.lat is None or args.lng is None):
        raise SystemExit("jobs: give --farmer-id, or both --lat and --lng")
    return _run_discovery(
        args,
        lambda: _marketplace(args).list_jobs(
            farmer_id=args.farmer_id, lat=args.lat, lng=args.lng, radius_km=args.radius, sort=args.sort
        ),
        _print_jobs,
    )


def _cmd_equipment(args: argparse.Namespace) -> int:
    return _run_discovery(
        args, lambda: _marketplace(args).list_equipment(args.lat, args.lng, args.radius, sort=args.sort), _print_equipment
    )


def _format_notification(n: Notification) -> str:
    return f"[{n.type}] {n.message}"


def _cmd_notifications(args: argparse.Namespace) -> int:
    notes = _marketplace(args).list_notifications(args.user_id)
    if args.json:
        _print_json(notes)
        return 0
    for n in notes:
        print(_format_notification(n))
    return 0


def _cmd_watch_notifications(args: argparse.Namespace) -> int:
    """Poll the notification feed and print entries not seen before (Ctrl-C to stop)."""
    settings = get_settings()
    interval = args.interval or settings.polling.notifications_interval_seconds
    seen: set[str] = set()

    def fetch() -> list[Notification]:
        # Fresh repository per poll so a JSON store written by the API is re-read.
        return _marketplace(args).list_notifications(args.user_id)

    def on_result(notes: list[Notification]) -> None:
        for n in reversed(notes):
            if n.id not in seen:
                seen.add(n.id)
                print(_format_notification(n), flush=True)

    poller = Poller(fetch, on_result, interval_seconds=interval, name=f"notifications:{args.user_id}")
    try:
        poller.run_forever()
    except KeyboardInterrupt:
        poller.stop()
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("agriconnect.api.app:app", host=args.host, port=int(args.port))
    return 0


def _add_discovery_args(p: argparse.ArgumentParser, *, require_origin: bool = True) -> None:
    p.add_argument("--lat", type=float, required=require_origin, default=None)
    p.add_argument("--lng", type=float, required=require_origin, default=None)
    p.add_argument("--radius", type=float, default=None, help="km; defaults to discovery.default_radius_km")
    p.add_argument("--sort", choices=["nearest", "rating"], default="nearest")
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    p.add_argument("--watch", action="store_true", help="Re-run on the discovery poll interval until Ctrl-C")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the AgriConnect CLI."""
    parser = argparse.ArgumentParser(prog="agriconnect")
    parser.add_argument("--store", type=str, default=None, help="JSON store file (overrides configured store)")
    parser.add_argument("--log-level", type=str, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    dist = sub.add_parser("distance", help="Great-circle distance between two points (km).")
    dist.add_argument("from_lat", type=float)
    dist.add_argument("from_lng", type=float)
    dist.add_argument("to_lat", type=float)
    dist.add_argument("to_lng", type=float)
    dist.set_defaults(func=_cmd_distance)

    workers = sub.add_parser("workers", help="Workers near a point.")
    _add_discovery_args(workers)
    workers.set_defaults(func=_cmd_workers)

    jobs = sub.add_parser("jobs", help="Open jobs near a point, or one farmer's jobs.")
    _add_discovery_args(jobs, require_origin=False)
    jobs.add_argument("--farmer-id", type=str, default=None)
    jobs.set_defaults(func=_cmd_jobs)

    equipment = sub.add_parser("equipment", help="Equipment near a point.")
    _add_discovery_args(equipment)
    equipment.set_defaults(func=_cmd_equipment)

    notes = sub.add_parser("notifications", help="A user's notifications, newest first.")
    notes.add_argument("--user-id", required=True)
    notes.add_argument("--json", action="store_true")
    notes.set_defaults(func=_cmd_notifications)

    watch = sub.add_parser("watch-notifications", help="Poll a user's notifications until interrupted.")
    watch.add_argument("--user-id", required=True)
    watch.add_argument("--interval", type=float, default=None, help="seconds; defaults to polling settings")
    watch.set_defaults(func=_cmd_watch_notifications)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3001)
    serve.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m agriconnect.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
