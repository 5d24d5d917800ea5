from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, TypeVar

from greenbook.access.hierarchy import HierarchyPolicy, UnitTree
from greenbook.access.resolver import AccessResolver
from greenbook.config import AccessSettings, settings
from greenbook.domain.models import AAR, Event, Unit, User

if TYPE_CHECKING:
    from greenbook.data.storage import DataStore

logger = logging.getLogger(__name__)

T = TypeVar("T", AAR, Unit, User)


def _dedupe(records: Iterable[T]) -> List[T]:
    """Keeps the first record seen for each id, preserving order."""
    unique: Dict[int, T] = {}
    for record in records:
        unique.setdefault(record.id, record)
    return list(unique.values())


class AccessAggregator:
    """
    Expands the resolver's per-unit decision into the sets of units, users and
    AARs a user may see. Each call reads a fresh snapshot from the store.
    """

    def __init__(
        self,
        store: DataStore,
        policy: Optional[HierarchyPolicy] = None,
        access: Optional[AccessSettings] = None,
    ):
        self.store = store
        self.policy = policy or HierarchyPolicy()
        self.access = access or settings.access

    def resolver(self) -> AccessResolver:
        return AccessResolver(UnitTree(self.store.list_units()), self.policy, self.access)

    def get_accessible_units(self, user_id: int) -> List[Unit]:
        user = self.store.get_user(user_id)
        if user is None:
            logger.warning(f"Accessible units requested for unknown user {user_id}")
            return []
        return self._units_for(user, self.resolver())

    def get_accessible_users(self, user_id: int) -> List[User]:
        units = self.get_accessible_units(user_id)
        return _dedupe(u for unit in units for u in self.store.list_users_by_unit(unit.id))

    def get_accessible_aars(self, user_id: int) -> List[AAR]:
        """
        Union of hierarchy-visible, participation-visible and self-authored AARs.
        """
        user = self.store.get_user(user_id)
        if user is None:
            logger.warning(f"Accessible AARs requested for unknown user {user_id}")
            return []

        resolver = self.resolver()
        if resolver.is_system_admin(user):
            return _dedupe(self.store.list_aars())

        aars: List[AAR] = []
        for unit in self._units_for(user, resolver):
            aars.extend(self.store.list_aars_by_unit(unit.id))
        for event in self.store.list_events_by_participant(user.id):
            aars.extend(self.store.list_aars_by_event(event.id))
        aars.extend(self.store.list_aars_by_author(user.id))
        return _dedupe(aars)

    def can_access_unit(self, user_id: int, unit_id: int) -> bool:
        user = self.store.get_user(user_id)
        unit = self.store.get_unit(unit_id)
        if user is None or unit is None:
            return False
        resolver = self.resolver()
        if resolver.is_commander(user):
            # Must agree with get_accessible_units, which confines commanders to their own tree.
            return any(u.id == unit.id for u in self._units_for(user, resolver))
        return resolver.can_access_unit(user, unit)

    def can_access_event(self, user_id: int, event_id: int) -> bool:
        user = self.store.get_user(user_id)
        event = self.store.get_event(event_id)
        if user is None or event is None:
            return False
        resolver = self.resolver()
        if resolver.is_system_admin(user):
            return True
        unit_ids = {u.id for u in self._units_for(user, resolver)}
        return self._event_visible(user, event, unit_ids)

    def can_access_aar(self, user_id: int, aar_id: int) -> bool:
        user = self.store.get_user(user_id)
        aar = self.store.get_aar(aar_id)
        if user is None or aar is None:
            return False
        if aar.created_by == user.id:
            return True

        resolver = self.resolver()
        if resolver.is_system_admin(user):
            return True
        unit_ids = {u.id for u in self._units_for(user, resolver)}
        if aar.unit_id in unit_ids:
            return True

        event = self.store.get_event(aar.event_id)
        if event is None:
            return False
        return self._event_visible(user, event, unit_ids)

    @staticmethod
    def _event_visible(user: User, event: Event, unit_ids: set) -> bool:
        return (
            event.unit_id in unit_ids
            or user.id in event.participants
            or any(uid in unit_ids for uid in event.participating_units)
        )

    def _units_for(self, user: User, resolver: AccessResolver) -> List[Unit]:
        tree = resolver.tree

        if resolver.is_system_admin(user):
            logger.debug(f"System admin {user.username} - returning all units")
            return tree.all_units()

        home = tree.get_unit(user.unit_id)
        if home is None:
            logger.warning(f"User {user.id} has no resolvable unit {user.unit_id}")
            return []

        if resolver.is_commander(user):
            # Unit owners see their own tree only, whatever their role's echelon breadth.
            logger.debug(f"Unit commander {user.username} - restricting to own unit hierarchy")
            return tree.subtree(home.id)

        # Anything the resolver can grant lies under the home unit, or under a
        # unit sharing its parent id when peers are visible. Siblings are looked
        # up by the raw parent id so a missing or deleted parent still groups them.
        roots = [home]
        if self.access.allow_lateral_peers and home.parent_id is not None:
            roots = tree.get_children(home.parent_id)
        candidates = _dedupe(unit for root in roots for unit in tree.subtree(root.id))
        return [unit for unit in candidates if resolver.can_access_unit(user, unit)]
