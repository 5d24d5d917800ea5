from pathlib import Path
import logging

import pytest

from greenbook.access import HierarchyPolicy, UnitTree
from greenbook.domain.models import Echelon, Unit, echelon_rank
from greenbook.exceptions import ConfigError

BASE = Path(__file__).resolve().parents[1]


def test_echelon_rank_orders_chain_of_command():
    assert [echelon_rank(e) for e in Echelon] == [1, 2, 3, 4, 5]
    assert echelon_rank("Squad") == echelon_rank(Echelon.SQUAD)
    assert echelon_rank("Brigade") == 0
    assert echelon_rank(None) == 0


def test_default_policy_table():
    policy = HierarchyPolicy()
    assert policy.accessible_echelons("Soldier") == frozenset()
    assert policy.accessible_echelons("Squad Leader") == {"Team", "Squad"}
    assert "Battalion" in policy.accessible_echelons("admin")
    assert "Battalion" not in policy.accessible_echelons("Commander")


def test_policy_gap_resolves_to_nothing(caplog):
    policy = HierarchyPolicy()
    with caplog.at_level(logging.WARNING):
        assert policy.accessible_echelons("XO") == frozenset()
    assert "No defined hierarchy for role: XO" in caplog.text
    assert not policy.has_role("XO")


def test_policy_from_yaml_matches_builtin_table():
    loaded = HierarchyPolicy.from_yaml(BASE / "config/hierarchy.yaml")
    builtin = HierarchyPolicy()
    for role in builtin.roles:
        assert loaded.accessible_echelons(role) == builtin.accessible_echelons(role)


def test_policy_from_yaml_rejects_unknown_echelon(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("roles:\n  Squad Leader: [Team, Fireteam]\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        HierarchyPolicy.from_yaml(path)


def test_policy_from_yaml_requires_roles_mapping(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("- Team\n- Squad\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        HierarchyPolicy.from_yaml(path)


def test_tree_navigation(store):
    tree = store.unit_tree()
    assert len(tree) == 12
    assert 99 not in tree
    assert {u.id for u in tree.get_children(4)} == {5, 6}
    assert [u.id for u in tree.descendants(2)] == [4, 5, 6, 7, 8]
    assert [u.id for u in tree.subtree(4)] == [4, 5, 6, 7, 8]
    assert [u.id for u in tree.ancestors(7)] == [5, 4, 2, 1]
    assert tree.parent_of(tree.get_unit(1)) is None
    assert tree.subtree(99) == []


def test_tree_cycle_detection(store):
    tree = store.unit_tree()
    assert tree.would_create_cycle(2, 7)
    assert tree.would_create_cycle(5, 5)
    assert not tree.would_create_cycle(7, 6)
    assert not tree.would_create_cycle(11, None)


def test_tree_walks_terminate_on_corrupted_parents(caplog):
    tree = UnitTree([
        Unit(id=1, name="A", parent_id=2, echelon="Squad"),
        Unit(id=2, name="B", parent_id=1, echelon="Platoon"),
    ])
    assert [u.id for u in tree.descendants(1)] == [2]
    with caplog.at_level(logging.WARNING):
        assert [u.id for u in tree.ancestors(1)] == [2]
    assert "Cycle detected" in caplog.text


def test_cycle_detection_for_unindexed_unit():
    tree = UnitTree([Unit(id=1, name="A", parent_id=2, echelon="Squad")])
    assert tree.would_create_cycle(2, 1)
    assert not tree.would_create_cycle(3, 1)
