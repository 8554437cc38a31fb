"""
Domain models (Pydantic).

These types are the contract between layers:
- stored entities (`User`, `Job`, `Equipment`, `Notification`)
- mutation payloads (`UserUpsert`, `UserUpdate`, `JobCreate`, `EquipmentCreate`)
- distance-annotated read views (`WorkerView`, `JobView`, `EquipmentView`)

Attributes are snake_case in Python and camelCase on the wire (`farmerId`,
`rentPerDay`); inputs accept either spelling.
"""

from __future__ import annotations

from typing import Literal, get_args
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agriconnect.core.geo import GeoPoint

Role = Literal["FARMER", "WORKER", "PROVIDER"]
JobStatus = Literal["OPEN", "FILLED", "COMPLETED", "CANCELLED"]
NotificationType = Literal["JOB", "WORKER", "SYSTEM"]
SortKey = Literal["nearest", "rating"]

JOB_STATUSES: tuple[str, ...] = get_args(JobStatus)
# Known equipment kinds; the field stays free text so new kinds need no migration.
EQUIPMENT_TYPES: tuple[str, ...] = ("Tractor", "Harvester", "Seeder", "Sprayer", "Drone")
DEFAULT_WORKER_RATING = 5.0


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinate(_WireModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class _Located(_WireModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    location: str = ""

    @property
    def coordinate(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


class User(_Located):
    id: str = ""
    name: str = ""
    phone: str
    role: Role
    # Only meaningful for workers.
    available: bool = True


class Job(_Located):
    id: str = ""
    farmer_id: str
    # Copied from the farmer at posting time; not re-synced on rename.
    farmer_name: str = ""
    work_type: str
    wage: int = Field(..., ge=0)
    description: str = ""
    date: str = ""
    status: JobStatus = "OPEN"
    rating: float = 0


class Equipment(_Located):
    id: str = ""
    provider_id: str
    type: str = "Tractor"
    name: str
    manufacturer: str | None = None
    model: str | None = None
    year: str | None = None
    rent_per_day: int = Field(..., ge=0)
    available: bool = True
    image: str = ""
    rating: float = 0


class Notification(_WireModel):
    id: str = ""
    user_id: str
    message: str
    type: NotificationType
    read: bool = False
    timestamp: int


class UserUpsert(_WireModel):
    """Login/signup payload. `phone` and `role` are checked by the service, not here,
    so a missing field is reported as a validation failure rather than a schema error."""

    id: str | None = None
    name: str | None = None
    phone: str | None = None
    role: Role | None = None
    location: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    available: bool | None = None


class UserUpdate(_WireModel):
    """Partial profile update. Role and id are immutable and therefore absent."""

    name: str | None = None
    phone: str | None = None
    location: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    available: bool | None = None


class JobCreate(_WireModel):
    farmer_id: str
    farmer_name: str | None = None
    work_type: str | None = None
    wage: int | None = Field(default=None, ge=0)
    description: str | None = None
    date: str | None = None
    location: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)


class JobStatusUpdate(_WireModel):
    status: str


class EquipmentCreate(_WireModel):
    provider_id: str
    type: str = "Tractor"
    name: str | None = None
    manufacturer: str | None = None
    model: str | None = None
    year: str | None = None
    rent_per_day: int | None = Field(default=None, ge=0)
    image: str | None = None
    location: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)


class WorkerView(_WireModel):
    """A worker as seen by a nearby farmer."""

    id: str
    name: str
    phone: str
    location: str
    lat: float
    lng: float
    available: bool
    distance: float
    rating: float = DEFAULT_WORKER_RATING
    skills: list[str] = Field(default_factory=lambda: ["General Labor"])
    image: str = ""

    @classmethod
    def from_user(cls, user: User, distance: float) -> "WorkerView":
        return cls(
            id=user.id,
            name=user.name,
            phone=user.phone,
            location=user.location,
            lat=user.lat,
            lng=user.lng,
            available=user.available,
            distance=distance,
            image=f"https://ui-avatars.com/api/?name={quote(user.name)}&background=random",
        )


class JobView(Job):
    # None in "my jobs" mode, where proximity does not apply.
    distance: float | None = None


class EquipmentView(Equipment):
    distance: float


class JobDescriptionRequest(_WireModel):
    work_type: str
    location: str = ""


class MaintenanceTipsRequest(_WireModel):
    equipment_name: str


class EquipmentImageRequest(_WireModel):
    equipment_type: str
    name: str


class TextContent(_WireModel):
    text: str
