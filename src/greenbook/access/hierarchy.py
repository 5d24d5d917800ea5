from collections import deque
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import logging
import yaml

from greenbook.domain.models import Echelon, Role, Unit, echelon_rank
from greenbook.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_HIERARCHY", "HierarchyPolicy", "UnitTree", "echelon_rank"]

_TEAM, _SQUAD, _PLATOON, _COMPANY, _BATTALION = (e.value for e in Echelon)

# Which unit echelons each role may inspect inside its chain of command.
DEFAULT_HIERARCHY: Dict[str, FrozenSet[str]] = {
    Role.SOLDIER.value: frozenset(),
    Role.TEAM_LEADER.value: frozenset({_TEAM}),
    Role.SQUAD_LEADER.value: frozenset({_TEAM, _SQUAD}),
    Role.PLATOON_SERGEANT.value: frozenset({_TEAM, _SQUAD, _PLATOON}),
    Role.PLATOON_LEADER.value: frozenset({_TEAM, _SQUAD, _PLATOON}),
    Role.FIRST_SERGEANT.value: frozenset({_TEAM, _SQUAD, _PLATOON, _COMPANY}),
    Role.COMMANDER.value: frozenset({_TEAM, _SQUAD, _PLATOON, _COMPANY}),
    Role.ADMIN.value: frozenset({_TEAM, _SQUAD, _PLATOON, _COMPANY, _BATTALION}),
}


class HierarchyPolicy:
    """
    Static Role -> echelons table, read-only for the process lifetime.
    Roles missing from the table (a policy gap) resolve to no echelons.
    """

    def __init__(self, table: Optional[Mapping[str, Iterable[str]]] = None):
        source = DEFAULT_HIERARCHY if table is None else table
        self._table: Dict[str, FrozenSet[str]] = {
            str(role): frozenset(str(getattr(e, "value", e)) for e in levels)
            for role, levels in source.items()
        }

    def has_role(self, role: str) -> bool:
        return role in self._table

    def accessible_echelons(self, role: str) -> FrozenSet[str]:
        levels = self._table.get(role)
        if levels is None:
            logger.warning(f"No defined hierarchy for role: {role}")
            return frozenset()
        return levels

    @property
    def roles(self) -> List[str]:
        return list(self._table)

    @classmethod
    def from_yaml(cls, path: Path) -> "HierarchyPolicy":
        """
        Loads a policy file shaped as:

            roles:
              Squad Leader: [Team, Squad]
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read hierarchy policy {path}: {exc}") from exc

        roles = data.get("roles") if isinstance(data, dict) else None
        if not isinstance(roles, dict):
            raise ConfigError(f"Hierarchy policy {path} must define a 'roles' mapping")

        table = {}
        for role, levels in roles.items():
            levels = levels or []
            unknown = [lvl for lvl in levels if echelon_rank(lvl) == 0]
            if unknown:
                raise ConfigError(f"Unknown echelon(s) {unknown} for role {role!r} in {path}")
            table[str(role)] = levels
        return cls(table)

    @classmethod
    def from_settings(cls, settings) -> "HierarchyPolicy":
        policy_file = settings.paths.policy_file
        if policy_file:
            return cls.from_yaml(Path(policy_file))
        return cls()


class UnitTree:
    """
    Read-only parent/child index over a snapshot of units.
    The parent graph is expected to be a forest, but every walk carries a
    visited set so a corrupted parent chain terminates.
    """

    def __init__(self, units: Iterable[Unit]):
        self._units: Dict[int, Unit] = {}
        self._children: Dict[int, List[int]] = {}
        for unit in units:
            self._units[unit.id] = unit
        for unit in self._units.values():
            if unit.parent_id is not None:
                self._children.setdefault(unit.parent_id, []).append(unit.id)

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._units

    def get_unit(self, unit_id: Optional[int]) -> Optional[Unit]:
        if unit_id is None:
            return None
        return self._units.get(unit_id)

    def get_children(self, unit_id: int) -> List[Unit]:
        return [self._units[cid] for cid in self._children.get(unit_id, [])]

    def all_units(self) -> List[Unit]:
        return list(self._units.values())

    def parent_of(self, unit: Unit) -> Optional[Unit]:
        if unit.parent_id is None or unit.parent_id == unit.id:
            return None
        return self._units.get(unit.parent_id)

    def descendants(self, unit_id: int) -> List[Unit]:
        """Breadth-first list of every unit below `unit_id` (the unit itself excluded)."""
        result: List[Unit] = []
        seen = {unit_id}
        queue = deque([unit_id])
        while queue:
            current = queue.popleft()
            for child in self.get_children(current):
                if child.id in seen:
                    continue
                seen.add(child.id)
                result.append(child)
                queue.append(child.id)
        return result

    def subtree(self, unit_id: int) -> List[Unit]:
        root = self.get_unit(unit_id)
        if root is None:
            return []
        return [root] + self.descendants(unit_id)

    def ancestors(self, unit_id: int) -> List[Unit]:
        """Parent chain of `unit_id`, nearest first. Stops at a repeated unit."""
        result: List[Unit] = []
        current = self.get_unit(unit_id)
        seen = {unit_id}
        while current is not None and current.parent_id is not None:
            if current.parent_id in seen:
                logger.warning(f"Cycle detected in unit parent chain at unit {current.parent_id}")
                break
            seen.add(current.parent_id)
            current = self.get_unit(current.parent_id)
            if current is not None:
                result.append(current)
        return result

    def would_create_cycle(self, unit_id: int, parent_id: Optional[int]) -> bool:
        """
        True when `unit_id` appears on the parent chain starting at `parent_id`.
        Follows raw parent ids, so `unit_id` need not be indexed yet.
        """
        seen = set()
        current = parent_id
        while current is not None and current not in seen:
            if current == unit_id:
                return True
            seen.add(current)
            unit = self._units.get(current)
            current = unit.parent_id if unit is not None else None
        return False
