"""
Entity repository.

One abstract capability set (`insert`, `update`, `find_by_id`, `find_all`) over four
collections: users, jobs, equipment, notifications. Two backends:

- `InMemoryRepository`: process-local dicts behind one re-entrant lock.
- `JsonFileRepository`: the same, plus a JSON snapshot rewritten after every write.

Stored entities are never mutated in place. `update` builds a new validated model
and swaps it in under the lock, so concurrent readers see either the old entity or
the new one, never a mix.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Literal, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from agriconnect.config.settings import Settings
from agriconnect.core.env import resolve_project_path
from agriconnect.core.errors import ValidationFailure
from agriconnect.domain.models import Equipment, Job, Notification, User

logger = logging.getLogger(__name__)

Collection = Literal["users", "jobs", "equipment", "notifications"]
E = TypeVar("E", bound=BaseModel)

ENTITY_TYPES: dict[str, type[BaseModel]] = {
    "users": User,
    "jobs": Job,
    "equipment": Equipment,
    "notifications": Notification,
}

_ID_PREFIXES: dict[str, str] = {
    "users": "user",
    "jobs": "job",
    "equipment": "equip",
    "notifications": "notif",
}


def new_id(collection: Collection) -> str:
    """Return a fresh opaque id such as `job_3f9c0a1b2d4e`."""
    return f"{_ID_PREFIXES[collection]}_{uuid.uuid4().hex[:12]}"


class Repository(ABC):
    @abstractmethod
    def insert(self, collection: Collection, entity: E) -> E:
        """Store `entity`, assigning a fresh id when it has none. Returns the stored entity."""

    @abstractmethod
    def update(self, collection: Collection, entity_id: str, fields: Mapping[str, Any]) -> E | None:
        """Shallow-merge `fields` (snake_case keys) into an entity. `None` if the id is unknown.

        Every key present overwrites, falsy values included: `{"available": False}`
        clears availability. Keys absent from `fields` are preserved. `id` is ignored.
        """

    @abstractmethod
    def find_by_id(self, collection: Collection, entity_id: str) -> E | None:
        ...

    @abstractmethod
    def find_all(self, collection: Collection, predicate: Callable[[E], bool] | None = None) -> list[E]:
        """All entities matching `predicate`, in insertion order."""


class InMemoryRepository(Repository):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, BaseModel]] = {name: {} for name in ENTITY_TYPES}

    def _items(self, collection: str) -> dict[str, BaseModel]:
        try:
            return self._data[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection!r}") from None

    def _after_write(self) -> None:
        """Hook for persistent subclasses; called with the lock held."""

    def insert(self, collection: Collection, entity: E) -> E:
        with self._lock:
            items = self._items(collection)
            if not getattr(entity, "id", ""):
                entity = entity.model_copy(update={"id": new_id(collection)})
            if entity.id in items:
                raise ValidationFailure(f"{collection} id already exists: {entity.id}")
            items[entity.id] = entity
            self._after_write()
            return entity

    def update(self, collection: Collection, entity_id: str, fields: Mapping[str, Any]) -> E | None:
        with self._lock:
            items = self._items(collection)
            current = items.get(entity_id)
            if current is None:
                return None
            changes = {k: v for k, v in fields.items() if k != "id"}
            try:
                merged = type(current).model_validate({**current.model_dump(), **changes})
            except ValidationError as e:
                raise ValidationFailure(str(e)) from e
            items[entity_id] = merged
            self._after_write()
            return merged

    def find_by_id(self, collection: Collection, entity_id: str) -> E | None:
        with self._lock:
            return self._items(collection).get(entity_id)

    def find_all(self, collection: Collection, predicate: Callable[[E], bool] | None = None) -> list[E]:
        with self._lock:
            snapshot = list(self._items(collection).values())
        if predicate is None:
            return snapshot
        return [e for e in snapshot if predicate(e)]


class JsonFileRepository(InMemoryRepository):
    """In-memory repository persisted to a single JSON file.

    The file maps collection name -> list of entities. It is rewritten through a
    temporary file and an atomic replace, so a crash mid-write leaves the previous
    snapshot intact.
    """

    def __init__(self, path: Path):
        super().__init__()
        self._path = path
        if path.exists():
            self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        raw = json.loads(self._path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid store file {self._path}; expected a mapping.")
        for name, model in ENTITY_TYPES.items():
            for payload in raw.get(name) or []:
                entity = model.model_validate(payload)
                self._data[name][entity.id] = entity
        logger.info(
            "Loaded store %s (%s)",
            self._path,
            ", ".join(f"{name}={len(items)}" for name, items in self._data.items()),
        )

    def _after_write(self) -> None:
        payload = {
            name: [e.model_dump(mode="json") for e in items.values()] for name, items in self._data.items()
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)


def build_repository(settings: Settings) -> Repository:
    """Construct the configured repository backend."""
    if settings.store.backend == "json":
        return JsonFileRepository(resolve_project_path(settings.store.path))
    return InMemoryRepository()
