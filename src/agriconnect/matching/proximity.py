# src/agriconnect/matching/proximity.py
"""
Proximity queries (discovery reads).

Every discovery view (workers near a farmer, open jobs near a worker, equipment near
anyone) is the same pipeline:

1) optional pre-filter (role = WORKER, status = OPEN, ...)
2) distance from the requester, rounded to 0.1 km for display stability
3) keep `distance <= radius` (inclusive, on the rounded value)
4) stable sort: nearest first, or highest rating first

Polling clients re-run these queries every few seconds, so the output must be a pure
function of the stored entities: Python's `sort` is stable and the repository returns
insertion order, so unchanged data always yields the same ordering.
"""

from __future__ import annotations

from typing import Callable, Iterable, Protocol, TypeVar

from agriconnect.core.geo import GeoPoint, distance_km, round_km
from agriconnect.domain.models import (
    DEFAULT_WORKER_RATING,
    EquipmentView,
    Job,
    JobView,
    SortKey,
    User,
    WorkerView,
)
from agriconnect.store.repository import Repository


class _Locatable(Protocol):
    @property
    def coordinate(self) -> GeoPoint: ...


T = TypeVar("T", bound=_Locatable)


def _rating(entity: object) -> float:
    return float(getattr(entity, "rating", 0) or 0)


def query_nearby(
    entities: Iterable[T],
    origin: GeoPoint,
    radius_km: float,
    *,
    sort: SortKey = "nearest",
    rating_of: Callable[[T], float] = _rating,
) -> list[tuple[T, float]]:
    """Return `(entity, distance_km)` pairs within `radius_km` of `origin`, sorted.

    A negative radius yields an empty result rather than an error.
    """
    radius = float(radius_km)
    if radius < 0:
        return []

    hits: list[tuple[T, float]] = []
    for entity in entities:
        d = round_km(distance_km(origin, entity.coordinate))
        if d <= radius:
            hits.append((entity, d))

    if sort == "rating":
        hits.sort(key=lambda pair: -rating_of(pair[0]))
    else:
        hits.sort(key=lambda pair: pair[1])
    return hits


def nearby_workers(
    repo: Repository, origin: GeoPoint, radius_km: float, *, sort: SortKey = "nearest"
) -> list[WorkerView]:
    workers: list[User] = repo.find_all("users", lambda u: u.role == "WORKER")
    hits = query_nearby(workers, origin, radius_km, sort=sort, rating_of=lambda _: DEFAULT_WORKER_RATING)
    return [WorkerView.from_user(user, d) for user, d in hits]


def nearby_jobs(
    repo: Repository, origin: GeoPoint, radius_km: float, *, sort: SortKey = "nearest"
) -> list[JobView]:
    """Open jobs near `origin`. Filled, completed and cancelled jobs are never listed."""
    open_jobs: list[Job] = repo.find_all("jobs", lambda j: j.status == "OPEN")
    hits = query_nearby(open_jobs, origin, radius_km, sort=sort)
    return [JobView(**job.model_dump(), distance=d) for job, d in hits]


def farmer_jobs(repo: Repository, farmer_id: str) -> list[JobView]:
    """All jobs posted by `farmer_id`, any status, in posting order (no distance)."""
    mine: list[Job] = repo.find_all("jobs", lambda j: j.farmer_id == farmer_id)
    return [JobView(**job.model_dump()) for job in mine]


def nearby_equipment(
    repo: Repository, origin: GeoPoint, radius_km: float, *, sort: SortKey = "nearest"
) -> list[EquipmentView]:
    """Equipment near `origin`; rented-out items are listed too (availability is shown, not filtered)."""
    hits = query_nearby(repo.find_all("equipment"), origin, radius_km, sort=sort)
    return [EquipmentView(**item.model_dump(), distance=d) for item, d in hits]
