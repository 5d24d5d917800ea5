from pathlib import Path
import pytest

from greenbook.access import AccessAggregator, AccessResolver, HierarchyPolicy
from greenbook.config import AccessSettings
from greenbook.data import InMemoryStore
from greenbook.domain.models import AAR, AARItem, Event, Unit, User

BASE = Path(__file__).resolve().parents[1]


def _unit(id, name, parent_id, echelon):
    return Unit(id=id, name=name, parent_id=parent_id, echelon=echelon, referral_code=f"REF{id}")


def _item(id, text, author_id=None):
    return AARItem(id=id, text=text, author_id=author_id)


@pytest.fixture
def units():
    """
    1 Battalion
    +-- 2 A Co
    |   +-- 4 1st PLT
    |       +-- 5 1st SQD -- 7 Alpha Team
    |       +-- 6 2nd SQD -- 8 Bravo Team
    +-- 3 B Co
        +-- 9 1st PLT -- 10 1st SQD
    11 HHC (disconnected) -- 12 Weapons SQD
    """
    return [
        _unit(1, "1-502 IN", None, "Battalion"),
        _unit(2, "A Co", 1, "Company"),
        _unit(3, "B Co", 1, "Company"),
        _unit(4, "A Co 1st PLT", 2, "Platoon"),
        _unit(5, "A Co 1st SQD", 4, "Squad"),
        _unit(6, "A Co 2nd SQD", 4, "Squad"),
        _unit(7, "Alpha Team", 5, "Team"),
        _unit(8, "Bravo Team", 6, "Team"),
        _unit(9, "B Co 1st PLT", 3, "Platoon"),
        _unit(10, "B Co 1st SQD", 9, "Squad"),
        _unit(11, "HHC 2-327", None, "Company"),
        _unit(12, "Weapons SQD", 11, "Squad"),
    ]


@pytest.fixture
def users():
    return [
        User(id=1, username="admin", role="admin", unit_id=1),
        User(id=2, username="cpt.hale", role="Commander", unit_id=2),
        User(id=3, username="ssg.ortiz", role="Squad Leader", unit_id=5),
        User(id=4, username="pfc.kim", role="Soldier", unit_id=6),
        User(id=5, username="1lt.ng", role="Platoon Leader", unit_id=4),
        User(id=6, username="cpt.reyes", role="admin", unit_id=11),
        User(id=7, username="maj.xo", role="XO", unit_id=2),
        User(id=8, username="sgt.lost", role="Squad Leader", unit_id=99),
        User(id=9, username="pvt.gone", role="Soldier", unit_id=5, is_deleted=True),
        User(id=10, username="sgt.team", role="Team Leader", unit_id=7),
    ]


@pytest.fixture
def events():
    return [
        Event(id=1, title="Squad live fire", unit_id=4, created_by=3, participants=[3, 4], participating_units=[5, 6]),
        Event(id=2, title="B Co STX", unit_id=9, created_by=5, participants=[3], participating_units=[10]),
        Event(id=3, title="HHC range", unit_id=11, created_by=6, participants=[6], participating_units=[11]),
    ]


@pytest.fixture
def aars():
    return [
        AAR(id=1, event_id=1, unit_id=5, created_by=3,
            sustain_items=[_item("s1", "Radio checks were completed before step off.")]),
        AAR(id=2, event_id=1, unit_id=6, created_by=4,
            improve_items=[_item("i2", "Radio traffic was unclear during the assault.")]),
        AAR(id=3, event_id=2, unit_id=10, created_by=6),
        AAR(id=4, event_id=3, unit_id=11, created_by=6),
        AAR(id=5, event_id=3, unit_id=12, created_by=3),
        AAR(id=6, event_id=1, unit_id=5, created_by=3, is_deleted=True),
    ]


@pytest.fixture
def store(units, users, events, aars):
    return InMemoryStore(units=units, users=users, events=events, aars=aars)


@pytest.fixture
def access_settings():
    return AccessSettings()


@pytest.fixture
def aggregator(store, access_settings):
    return AccessAggregator(store=store, policy=HierarchyPolicy(), access=access_settings)


@pytest.fixture
def resolver(store, access_settings):
    return AccessResolver(store.unit_tree(), HierarchyPolicy(), access_settings)


@pytest.fixture
def item_factory():
    counter = {"n": 0}

    def make(text, author_id=1):
        counter["n"] += 1
        return AARItem(id=f"item-{counter['n']}", text=text, author_id=author_id)

    return make


@pytest.fixture
def sample_snapshot():
    return BASE / "data/sample_snapshot.yaml"
