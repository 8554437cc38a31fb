"""
API routes.

Endpoints (JSON bodies and responses use camelCase keys):
- POST  `/api/login`             upsert a user by phone
- GET   `/api/users/lookup`      user by phone
- PATCH `/api/users/{id}`        partial profile update
- GET   `/api/workers`           workers near lat/lng
- POST  `/api/jobs`              post a job (notifies nearby workers)
- PATCH `/api/jobs/{id}`         set job status
- GET   `/api/jobs`              a farmer's jobs, or open jobs near lat/lng
- POST  `/api/equipment`         add equipment
- GET   `/api/equipment`         equipment near lat/lng
- GET   `/api/notifications`     a user's notifications, newest first
- geocoding and content helpers under `/api/geocode/*` and `/api/content/*`
"""

from __future__ import annotations

from functools import lru_cache
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query

from agriconnect.config.settings import get_settings
from agriconnect.core.cache import FileCache
from agriconnect.core.env import resolve_project_path
from agriconnect.core.errors import ValidationFailure
from agriconnect.domain.models import (
    Coordinate,
    Equipment,
    EquipmentCreate,
    EquipmentImageRequest,
    EquipmentView,
    Job,
    JobCreate,
    JobDescriptionRequest,
    JobStatusUpdate,
    JobView,
    MaintenanceTipsRequest,
    Notification,
    SortKey,
    TextContent,
    User,
    UserUpdate,
    UserUpsert,
    WorkerView,
)
from agriconnect.ingestion.content_client import ContentClient
from agriconnect.ingestion.geocoding_client import GeocodingClient
from agriconnect.services.marketplace import Marketplace
from agriconnect.store.repository import build_repository

router = APIRouter()


@lru_cache
def _cache() -> FileCache:
    settings = get_settings()
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


@lru_cache
def _geocoder() -> GeocodingClient:
    return GeocodingClient(get_settings(), _cache())


@lru_cache
def _content() -> ContentClient:
    return ContentClient(get_settings())


@lru_cache
def _marketplace() -> Marketplace:
    settings = get_settings()
    return Marketplace(build_repository(settings), settings, geocoder=_geocoder(), content=_content())


def _bad_request(e: ValidationFailure) -> NoReturn:
    raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e


def _not_found(what: str) -> NoReturn:
    raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": f"{what} not found"})


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok", "app": get_settings().app.name}


# --- users ---


@router.post("/api/login", response_model=User)
def post_login(payload: UserUpsert) -> User:
    """Sign up or log in by phone number; returns the stored user."""
    try:
        return _marketplace().upsert_user(payload)
    except ValidationFailure as e:
        _bad_request(e)


@router.get("/api/users/lookup", response_model=User)
def get_user_by_phone(phone: str) -> User:
    user = _marketplace().lookup_user_by_phone(phone)
    if user is None:
        _not_found("User")
    return user


@router.patch("/api/users/{user_id}", response_model=User)
def patch_user(user_id: str, payload: UserUpdate) -> User:
    try:
        user = _marketplace().update_user(user_id, payload)
    except ValidationFailure as e:
        _bad_request(e)
    if user is None:
        _not_found("User")
    return user


@router.get("/api/workers", response_model=list[WorkerView])
def get_workers(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float | None = None,
    sort: SortKey = "nearest",
) -> list[WorkerView]:
    """Workers within `radius` km (default from settings), nearest first."""
    return _marketplace().list_workers(lat, lng, radius, sort=sort)


# --- jobs ---


@router.post("/api/jobs", response_model=Job)
def post_job(payload: JobCreate) -> Job:
    try:
        return _marketplace().post_job(payload)
    except ValidationFailure as e:
        _bad_request(e)


@router.patch("/api/jobs/{job_id}", response_model=Job)
def patch_job(job_id: str, payload: JobStatusUpdate) -> Job:
    try:
        job = _marketplace().update_job_status(job_id, payload.status)
    except ValidationFailure as e:
        _bad_request(e)
    if job is None:
        _not_found("Job")
    return job


@router.get("/api/jobs", response_model=list[JobView], response_model_exclude_none=True)
def get_jobs(
    farmer_id: str | None = Query(default=None, alias="farmerId"),
    lat: float | None = Query(default=None, ge=-90, le=90),
    lng: float | None = Query(default=None, ge=-180, le=180),
    radius: float | None = None,
    sort: SortKey = "nearest",
) -> list[JobView]:
    """A farmer's own jobs when `farmerId` is given; otherwise open jobs near lat/lng."""
    try:
        return _marketplace().list_jobs(farmer_id=farmer_id, lat=lat, lng=lng, radius_km=radius, sort=sort)
    except ValidationFailure as e:
        _bad_request(e)


# --- equipment ---


@router.post("/api/equipment", response_model=Equipment)
def post_equipment(payload: EquipmentCreate) -> Equipment:
    try:
        return _marketplace().add_equipment(payload)
    except ValidationFailure as e:
        _bad_request(e)


@router.get("/api/equipment", response_model=list[EquipmentView])
def get_equipment(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float | None = None,
    sort: SortKey = "nearest",
) -> list[EquipmentView]:
    return _marketplace().list_equipment(lat, lng, radius, sort=sort)


# --- notifications ---


@router.get("/api/notifications", response_model=list[Notification])
def get_notifications(user_id: str = Query(..., alias="userId")) -> list[Notification]:
    return _marketplace().list_notifications(user_id)


# --- collaborators ---


@router.get("/api/geocode/reverse")
def get_reverse_geocode(lat: float, lng: float) -> dict:
    """Place name for a coordinate (literal coordinates when the geocoder is unavailable)."""
    try:
        Coordinate(lat=lat, lng=lng)
    except ValueError as e:
        _bad_request(ValidationFailure(str(e)))
    return {"lat": lat, "lng": lng, "location": _geocoder().reverse(lat, lng)}


@router.get("/api/geocode/search")
def get_forward_geocode(q: str) -> dict:
    point = _geocoder().forward(q)
    if point is None:
        _not_found("Place")
    return {"query": q, "lat": point.lat, "lng": point.lng}


@router.post("/api/content/job-description", response_model=TextContent)
def post_job_description(payload: JobDescriptionRequest) -> TextContent:
    return TextContent(text=_content().job_description(payload.work_type, payload.location))


@router.post("/api/content/maintenance-tips", response_model=TextContent)
def post_maintenance_tips(payload: MaintenanceTipsRequest) -> TextContent:
    return TextContent(text=_content().maintenance_tips(payload.equipment_name))


@router.post("/api/content/equipment-image")
def post_equipment_image(payload: EquipmentImageRequest) -> dict:
    """Generated image as a `data:` URI, or the stock image URI on failure."""
    return {"image": _content().equipment_image(payload.equipment_type, payload.name)}
