"""
Notification fan-out.

Two creation events notify nearby counterparts:
- a new WORKER signs up   -> every FARMER within 20 km gets a WORKER notification
- a new job is posted     -> every WORKER within 20 km gets a JOB notification

The radius is fixed policy and independent of any discovery radius a client asks
for. There is no recipient cap and no de-duplication: callers fire each trigger
exactly once per creation. Distances here are unrounded.
"""

from __future__ import annotations

import logging

from agriconnect.core.geo import GeoPoint, distance_km
from agriconnect.core.time import now_ms
from agriconnect.domain.models import Job, Notification, NotificationType, Role, User
from agriconnect.store.repository import Repository

logger = logging.getLogger(__name__)

FANOUT_RADIUS_KM = 20.0


def _users_near(repo: Repository, origin: GeoPoint, role: Role) -> list[User]:
    return repo.find_all(
        "users",
        lambda u: u.role == role and distance_km(origin, u.coordinate) <= FANOUT_RADIUS_KM,
    )


def _notify(repo: Repository, recipients: list[User], message: str, kind: NotificationType) -> list[Notification]:
    stamp = now_ms()
    return [
        repo.insert("notifications", Notification(user_id=u.id, message=message, type=kind, timestamp=stamp))
        for u in recipients
    ]


def notify_farmers_of_new_worker(repo: Repository, worker: User) -> list[Notification]:
    farmers = _users_near(repo, worker.coordinate, "FARMER")
    created = _notify(repo, farmers, f"New worker {worker.name} joined near {worker.location}", "WORKER")
    logger.info("Worker %s: notified %d nearby farmer(s)", worker.id, len(created))
    return created


def notify_workers_of_new_job(repo: Repository, job: Job) -> list[Notification]:
    workers = _users_near(repo, job.coordinate, "WORKER")
    created = _notify(repo, workers, f"New Job: {job.work_type} at {job.farmer_name}", "JOB")
    logger.info("Job %s: notified %d nearby worker(s)", job.id, len(created))
    return created
