from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import yaml
from pydantic import ValidationError

from greenbook.access.hierarchy import UnitTree
from greenbook.domain.models import AAR, AssignmentType, Event, Unit, UnitAssignment, User
from greenbook.exceptions import DataSourceError, HierarchyError, NotFoundError

logger = logging.getLogger(__name__)


class DataStore(Protocol):
    """
    Read contract the access and analysis core depends on.
    Implementations hide soft-deleted records from every list/get call.
    """

    def get_unit(self, unit_id: int) -> Optional[Unit]:
        ...

    def list_units(self) -> List[Unit]:
        ...

    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def list_users(self) -> List[User]:
        ...

    def list_users_by_unit(self, unit_id: int) -> List[User]:
        ...

    def get_event(self, event_id: int) -> Optional[Event]:
        ...

    def list_events_by_participant(self, user_id: int) -> List[Event]:
        ...

    def get_aar(self, aar_id: int) -> Optional[AAR]:
        ...

    def list_aars(self) -> List[AAR]:
        ...

    def list_aars_by_unit(self, unit_id: int) -> List[AAR]:
        ...

    def list_aars_by_event(self, event_id: int) -> List[AAR]:
        ...

    def list_aars_by_author(self, user_id: int) -> List[AAR]:
        ...


class InMemoryStore:
    """
    Dict-backed DataStore used by the CLI, the API runtime and tests.
    Loaded from a JSON/YAML snapshot; writes enforce the unit tree invariants.
    """

    def __init__(
        self,
        units: Iterable[Unit] = (),
        users: Iterable[User] = (),
        events: Iterable[Event] = (),
        aars: Iterable[AAR] = (),
        assignments: Iterable[UnitAssignment] = (),
    ):
        self._units: Dict[int, Unit] = {}
        self._users: Dict[int, User] = {}
        self._events: Dict[int, Event] = {}
        self._aars: Dict[int, AAR] = {}
        self._assignments: Dict[int, UnitAssignment] = {}
        for unit in units:
            self.add_unit(unit)
        for user in users:
            self.add_user(user)
        for event in events:
            self.add_event(event)
        for aar in aars:
            self.add_aar(aar)
        for assignment in assignments:
            self._assignments[assignment.id] = assignment

    # ----- loading -----
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryStore":
        if not isinstance(data, dict):
            raise DataSourceError("Snapshot must be a mapping of collections")
        try:
            return cls(
                units=[Unit.model_validate(u) for u in data.get("units", [])],
                users=[User.model_validate(u) for u in data.get("users", [])],
                events=[Event.model_validate(e) for e in data.get("events", [])],
                aars=[AAR.model_validate(a) for a in data.get("aars", [])],
                assignments=[UnitAssignment.model_validate(a) for a in data.get("assignments", [])],
            )
        except ValidationError as exc:
            raise DataSourceError(f"Invalid snapshot record: {exc}") from exc
        except HierarchyError as exc:
            raise DataSourceError(f"Invalid unit hierarchy in snapshot: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryStore":
        path = Path(path)
        if not path.exists():
            raise DataSourceError(f"Snapshot file not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() in {".yaml", ".yml"}:
                data = yaml.safe_load(text) or {}
            else:
                data = json.loads(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise DataSourceError(f"Cannot parse snapshot {path}: {exc}") from exc
        store = cls.from_dict(data)
        logger.info(
            f"Loaded snapshot {path.name}: {len(store._units)} units, {len(store._users)} users, "
            f"{len(store._aars)} AARs"
        )
        return store

    # ----- reads -----
    def get_unit(self, unit_id: int) -> Optional[Unit]:
        unit = self._units.get(unit_id)
        return unit if unit and not unit.is_deleted else None

    def list_units(self) -> List[Unit]:
        return [u for u in self._units.values() if not u.is_deleted]

    def unit_tree(self) -> UnitTree:
        return UnitTree(self.list_units())

    def get_user(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return user if user and not user.is_deleted else None

    def list_users(self) -> List[User]:
        return [u for u in self._users.values() if not u.is_deleted]

    def list_users_by_unit(self, unit_id: int) -> List[User]:
        return [u for u in self.list_users() if u.unit_id == unit_id]

    def get_event(self, event_id: int) -> Optional[Event]:
        event = self._events.get(event_id)
        return event if event and not event.is_deleted else None

    def list_events_by_participant(self, user_id: int) -> List[Event]:
        return [e for e in self._events.values() if not e.is_deleted and user_id in e.participants]

    def get_aar(self, aar_id: int) -> Optional[AAR]:
        aar = self._aars.get(aar_id)
        return aar if aar and not aar.is_deleted else None

    def list_aars(self) -> List[AAR]:
        return [a for a in self._aars.values() if not a.is_deleted]

    def list_aars_by_unit(self, unit_id: int) -> List[AAR]:
        return [a for a in self.list_aars() if a.unit_id == unit_id]

    def list_aars_by_event(self, event_id: int) -> List[AAR]:
        return [a for a in self.list_aars() if a.event_id == event_id]

    def list_aars_by_author(self, user_id: int) -> List[AAR]:
        return [a for a in self.list_aars() if a.created_by == user_id]

    def list_assignments(self, user_id: int, active_only: bool = True) -> List[UnitAssignment]:
        return [
            a for a in self._assignments.values()
            if a.user_id == user_id and (a.is_active or not active_only)
        ]

    # ----- writes -----
    def add_unit(self, unit: Unit) -> Unit:
        if unit.parent_id is not None and unit.parent_id == unit.id:
            raise HierarchyError(f"Unit {unit.id} cannot be its own parent")
        if unit.parent_id is not None and UnitTree(self._units.values()).would_create_cycle(unit.id, unit.parent_id):
            raise HierarchyError(f"Unit {unit.id} cannot be placed under its own descendant {unit.parent_id}")
        self._units[unit.id] = unit
        return unit

    def set_unit_parent(self, unit_id: int, parent_id: Optional[int]) -> Unit:
        unit = self.get_unit(unit_id)
        if unit is None:
            raise NotFoundError(f"Unit {unit_id} not found")
        if parent_id is not None and self.get_unit(parent_id) is None:
            raise NotFoundError(f"Parent unit {parent_id} not found")
        if UnitTree(self._units.values()).would_create_cycle(unit_id, parent_id):
            raise HierarchyError(f"Moving unit {unit_id} under {parent_id} would create a cycle")
        updated = unit.model_copy(update={"parent_id": parent_id})
        self._units[unit_id] = updated
        return updated

    def add_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def add_event(self, event: Event) -> Event:
        self._events[event.id] = event
        return event

    def add_aar(self, aar: AAR) -> AAR:
        self._aars[aar.id] = aar
        return aar

    def assign_user_to_unit(
        self,
        user_id: int,
        unit_id: int,
        assignment_type: AssignmentType = AssignmentType.PRIMARY,
        leadership_role: Optional[str] = None,
        assigned_by: Optional[int] = None,
    ) -> UnitAssignment:
        """
        Records an assignment. Only a PRIMARY assignment moves the user's canonical
        unit_id (and closes the previous primary assignment).
        """
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if self.get_unit(unit_id) is None:
            raise NotFoundError(f"Unit {unit_id} not found")

        now = datetime.now(UTC)
        if assignment_type == AssignmentType.PRIMARY:
            for existing in self.list_assignments(user_id):
                if existing.assignment_type == AssignmentType.PRIMARY:
                    self._assignments[existing.id] = existing.model_copy(update={"end_date": now})
            self._users[user_id] = user.model_copy(update={"unit_id": unit_id})

        assignment = UnitAssignment(
            id=max(self._assignments, default=0) + 1,
            user_id=user_id,
            unit_id=unit_id,
            assignment_type=assignment_type,
            leadership_role=leadership_role,
            assigned_by=assigned_by,
            start_date=now,
        )
        self._assignments[assignment.id] = assignment
        return assignment

    def soft_delete_unit(self, unit_id: int) -> None:
        self._soft_delete(self._units, unit_id, "Unit")

    def soft_delete_user(self, user_id: int) -> None:
        self._soft_delete(self._users, user_id, "User")

    def soft_delete_aar(self, aar_id: int) -> None:
        self._soft_delete(self._aars, aar_id, "AAR")

    def purge_unit(self, unit_id: int) -> None:
        """Administrative hard delete. Children are detached to become roots."""
        if unit_id not in self._units:
            raise NotFoundError(f"Unit {unit_id} not found")
        del self._units[unit_id]
        for child_id, child in list(self._units.items()):
            if child.parent_id == unit_id:
                self._units[child_id] = child.model_copy(update={"parent_id": None})

    @staticmethod
    def _soft_delete(records: Dict[int, Any], record_id: int, label: str) -> None:
        record = records.get(record_id)
        if record is None:
            raise NotFoundError(f"{label} {record_id} not found")
        records[record_id] = record.model_copy(update={"is_deleted": True, "deleted_at": datetime.now(UTC)})
