"""
Marketplace service: mutation handlers and discovery reads.

This is the transport-agnostic contract the HTTP routes and the CLI call into.
It wires together:
- the repository (storage)
- proximity queries (discovery reads)
- notification fan-out (triggered by new workers and new jobs)
- optional geocoding / content collaborators (best-effort enrichment)

Mutations are serialized by one writer lock; reads take no service-level lock and
rely on the repository's snapshot reads.
"""

from __future__ import annotations

import logging
import threading

from agriconnect.config.settings import Settings
from agriconnect.core.errors import ValidationFailure
from agriconnect.core.geo import GeoPoint, format_coordinate
from agriconnect.core.time import today_iso
from agriconnect.domain.models import (
    EQUIPMENT_TYPES,
    JOB_STATUSES,
    Equipment,
    EquipmentCreate,
    EquipmentView,
    Job,
    JobCreate,
    JobView,
    Notification,
    SortKey,
    User,
    UserUpdate,
    UserUpsert,
    WorkerView,
)
from agriconnect.ingestion.content_client import ContentClient
from agriconnect.ingestion.geocoding_client import GeocodingClient
from agriconnect.matching.fanout import notify_farmers_of_new_worker, notify_workers_of_new_job
from agriconnect.matching.proximity import farmer_jobs, nearby_equipment, nearby_jobs, nearby_workers
from agriconnect.store.repository import Repository

logger = logging.getLogger(__name__)


class Marketplace:
    def __init__(
        self,
        repository: Repository,
        settings: Settings,
        *,
        geocoder: GeocodingClient | None = None,
        content: ContentClient | None = None,
    ):
        self._repo = repository
        self._settings = settings
        self._geocoder = geocoder
        self._content = content
        self._write_lock = threading.Lock()

    @property
    def repository(self) -> Repository:
        return self._repo

    def _radius(self, radius_km: float | None) -> float:
        return float(self._settings.discovery.default_radius_km if radius_km is None else radius_km)

    @staticmethod
    def _require_coordinate_pair(lat: float | None, lng: float | None) -> None:
        if (lat is None) != (lng is None):
            raise ValidationFailure("lat and lng must be given together")

    def _resolve_location(
        self, lat: float | None, lng: float | None, label: str | None
    ) -> tuple[float, float, str]:
        """Fill in whichever of coordinates / place label is missing.

        Coordinates: forward-geocode the label, else the configured fallback coordinate.
        Label: reverse-geocode the coordinates, else the literal "lat, lng".
        """
        if lat is None or lng is None:
            point = self._geocoder.forward(label) if (self._geocoder and label) else None
            if point is None:
                fb = self._settings.discovery.fallback_coordinate
                logger.info("No coordinates for %r; using fallback %.4f, %.4f", label, fb.lat, fb.lng)
                point = GeoPoint(lat=fb.lat, lng=fb.lng)
            lat, lng = point.lat, point.lng
        if not label:
            label = self._geocoder.reverse(lat, lng) if self._geocoder else format_coordinate(lat, lng)
        return lat, lng, label

    # --- users ---

    def lookup_user_by_phone(self, phone: str) -> User | None:
        matches = self._repo.find_all("users", lambda u: u.phone == phone)
        return matches[0] if matches else None

    def upsert_user(self, payload: UserUpsert) -> User:
        """Login/signup keyed by phone.

        New phone: insert (available=True) and, for workers, notify nearby farmers.
        Known phone: merge the supplied fields into the stored user; id, role and
        availability are kept unless availability is supplied. No notifications.
        """
        if not payload.phone or not payload.role:
            raise ValidationFailure("Phone and Role are required")
        self._require_coordinate_pair(payload.lat, payload.lng)
        supplied = payload.model_dump(exclude_unset=True, exclude_none=True)

        with self._write_lock:
            existing = self.lookup_user_by_phone(payload.phone)
            if existing is not None:
                if payload.role != existing.role:
                    logger.warning("User %s: ignoring role change %s -> %s", existing.id, existing.role, payload.role)
                changes = {k: v for k, v in supplied.items() if k not in ("id", "role")}
                if not changes.get("name"):
                    changes["name"] = existing.name or "Unknown"
                return self._repo.update("users", existing.id, changes)

            lat, lng, location = self._resolve_location(payload.lat, payload.lng, payload.location)
            user = self._repo.insert(
                "users",
                User(
                    id=payload.id or "",
                    name=payload.name or "Unknown",
                    phone=payload.phone,
                    role=payload.role,
                    location=location,
                    lat=lat,
                    lng=lng,
                    available=True,
                ),
            )
            logger.info("Registered %s %s", user.role.lower(), user.id)
            if user.role == "WORKER":
                notify_farmers_of_new_worker(self._repo, user)
            return user

    def update_user(self, user_id: str, payload: UserUpdate) -> User | None:
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        with self._write_lock:
            user = self._repo.update("users", user_id, changes)
        if user is not None:
            logger.info("User %s updated: %s", user_id, sorted(changes))
        return user

    def list_workers(
        self, lat: float, lng: float, radius_km: float | None = None, *, sort: SortKey = "nearest"
    ) -> list[WorkerView]:
        return nearby_workers(self._repo, GeoPoint(lat=lat, lng=lng), self._radius(radius_km), sort=sort)

    # --- jobs ---

    def post_job(self, payload: JobCreate) -> Job:
        """Insert a job as OPEN (whatever the caller sent) and notify nearby workers."""
        if not payload.work_type or payload.wage is None:
            raise ValidationFailure("workType and wage are required")
        self._require_coordinate_pair(payload.lat, payload.lng)

        farmer = self._repo.find_by_id("users", payload.farmer_id)
        lat, lng, location = payload.lat, payload.lng, payload.location
        if farmer is not None and (lat is None or lng is None):
            lat, lng = farmer.lat, farmer.lng
            location = location or farmer.location
        lat, lng, location = self._resolve_location(lat, lng, location)

        description = payload.description or ""
        if not description and self._content is not None:
            description = self._content.job_description(payload.work_type, location)

        job = Job(
            farmer_id=payload.farmer_id,
            farmer_name=payload.farmer_name or (farmer.name if farmer else ""),
            work_type=payload.work_type,
            wage=payload.wage,
            description=description,
            date=payload.date or today_iso(),
            location=location,
            lat=lat,
            lng=lng,
            status="OPEN",
            rating=0,
        )
        with self._write_lock:
            job = self._repo.insert("jobs", job)
            logger.info("Job posted: %s (%s)", job.work_type, job.id)
            notify_workers_of_new_job(self._repo, job)
        return job

    def update_job_status(self, job_id: str, status: str) -> Job | None:
        """Set a job's status. Any status may follow any other; there is no transition table."""
        if status not in JOB_STATUSES:
            raise ValidationFailure(f"status must be one of {', '.join(JOB_STATUSES)}")
        with self._write_lock:
            return self._repo.update("jobs", job_id, {"status": status})

    def list_jobs(
        self,
        *,
        farmer_id: str | None = None,
        lat: float | None = None,
        lng: float | None = None,
        radius_km: float | None = None,
        sort: SortKey = "nearest",
    ) -> list[JobView]:
        """A farmer's own jobs (`farmer_id`), or open jobs near (`lat`, `lng`)."""
        if farmer_id:
            return farmer_jobs(self._repo, farmer_id)
        if lat is None or lng is None:
            raise ValidationFailure("lat and lng are required unless farmerId is given")
        return nearby_jobs(self._repo, GeoPoint(lat=lat, lng=lng), self._radius(radius_km), sort=sort)

    # --- equipment ---

    def add_equipment(self, payload: EquipmentCreate) -> Equipment:
        if not payload.name or payload.rent_per_day is None:
            raise ValidationFailure("name and rentPerDay are required")
        self._require_coordinate_pair(payload.lat, payload.lng)
        if payload.type not in EQUIPMENT_TYPES:
            logger.info("Unlisted equipment type %r from provider %s", payload.type, payload.provider_id)

        provider = self._repo.find_by_id("users", payload.provider_id)
        lat, lng, location = payload.lat, payload.lng, payload.location
        if provider is not None and (lat is None or lng is None):
            lat, lng = provider.lat, provider.lng
            location = location or provider.location
        lat, lng, location = self._resolve_location(lat, lng, location)

        image = payload.image or ""
        if not image:
            if self._content is not None:
                label = " ".join(p for p in (payload.manufacturer, payload.model, payload.name) if p)
                image = self._content.equipment_image(payload.type, label)
            else:
                image = self._settings.content.fallback_image_uri

        item = Equipment(
            provider_id=payload.provider_id,
            type=payload.type,
            name=payload.name,
            manufacturer=payload.manufacturer,
            model=payload.model,
            year=payload.year,
            rent_per_day=payload.rent_per_day,
            available=True,
            image=image,
            location=location,
            lat=lat,
            lng=lng,
            rating=0,
        )
        with self._write_lock:
            item = self._repo.insert("equipment", item)
        logger.info("Equipment added: %s (%s)", item.name, item.id)
        return item

    def list_equipment(
        self, lat: float, lng: float, radius_km: float | None = None, *, sort: SortKey = "nearest"
    ) -> list[EquipmentView]:
        return nearby_equipment(self._repo, GeoPoint(lat=lat, lng=lng), self._radius(radius_km), sort=sort)

    # --- notifications ---

    def list_notifications(self, user_id: str) -> list[Notification]:
        """Notifications for `user_id`, newest first (later insertions first on equal timestamps)."""
        mine: list[Notification] = self._repo.find_all("notifications", lambda n: n.user_id == user_id)
        return sorted(reversed(mine), key=lambda n: n.timestamp, reverse=True)
