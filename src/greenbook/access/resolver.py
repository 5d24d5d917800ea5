from typing import Optional, Set

import logging

from greenbook.access.hierarchy import HierarchyPolicy, UnitTree
from greenbook.config import AccessSettings, settings
from greenbook.domain.models import Unit, User, echelon_rank

logger = logging.getLogger(__name__)


class AccessResolver:
    """
    Decides whether a user may see a unit, using the unit tree and the role policy.
    Every failure path (missing unit, unknown role, malformed echelon, corrupted
    parent chain) resolves to deny and is logged, never raised.
    """

    def __init__(
        self,
        tree: UnitTree,
        policy: Optional[HierarchyPolicy] = None,
        access: Optional[AccessSettings] = None,
    ):
        self.tree = tree
        self.policy = policy or HierarchyPolicy()
        self.access = access or settings.access

    def is_system_admin(self, user: User) -> bool:
        # The admin role alone is not enough: self-registered unit owners can carry it too.
        return (
            user.role == self.access.admin_role
            and user.username == self.access.system_admin_username
        )

    def is_commander(self, user: User) -> bool:
        return user.role == self.access.commander_role

    def can_access_unit(self, user: User, target: Unit) -> bool:
        if self.is_system_admin(user):
            logger.debug(f"User {user.username} (ID: {user.id}) is a system admin with global access")
            return True

        if target.id == user.unit_id:
            return True

        source = self.tree.get_unit(user.unit_id)
        if source is None:
            logger.warning(f"User {user.id} references missing unit {user.unit_id}; denying access")
            return False

        levels = self.policy.accessible_echelons(user.role)
        if target.echelon not in levels:
            if echelon_rank(target.echelon) == 0:
                logger.warning(f"Unit {target.id} has malformed echelon {target.echelon!r}; denying access")
            return False

        return self.in_chain_of_command(source, target)

    def in_chain_of_command(self, source: Unit, target: Unit) -> bool:
        """
        Walks up from `target` looking for `source`.

        A unit ranked above the source can never be supervised by it. With lateral
        peers enabled, reaching the source's own parent means the target sits under
        a sibling of the source (or is that sibling) and is visible as a peer.
        """
        return self._walk_up(source, target, visited=set())

    def _walk_up(self, source: Unit, target: Unit, visited: Set[int]) -> bool:
        if target.id in visited:
            logger.warning(f"Cycle detected in unit hierarchy at unit {target.id}; denying access")
            return False
        visited.add(target.id)

        if target.id == source.id:
            return True

        if target.parent_id == source.id:
            return True

        if echelon_rank(source.echelon) < echelon_rank(target.echelon):
            return False

        if (
            self.access.allow_lateral_peers
            and source.parent_id is not None
            and target.parent_id == source.parent_id
        ):
            return True

        if target.parent_id is None:
            return False

        parent = self.tree.get_unit(target.parent_id)
        if parent is None:
            logger.warning(f"Unit {target.id} references missing parent {target.parent_id}")
            return False

        return self._walk_up(source, parent, visited)
