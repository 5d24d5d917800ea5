from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from greenbook.domain.models import AARItem


@dataclass(frozen=True)
class CategoryRule:
    category: str
    keywords: Tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(keyword.lower() in text for keyword in self.keywords)


@dataclass(frozen=True)
class BucketConfig:
    """
    Ordered category rules for one bucket. Order is significant: an item goes to
    the first rule it matches, so reordering changes the classification.
    """
    name: str
    rules: Tuple[CategoryRule, ...]
    default_category: str
    categories: List[str] = field(init=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "categories", [r.category for r in self.rules] + [self.default_category])


def _rules(*pairs: Tuple[str, Sequence[str]]) -> Tuple[CategoryRule, ...]:
    return tuple(CategoryRule(category, tuple(keywords)) for category, keywords in pairs)


_COMMS = ["radio", "comms", "communication", "call sign", "sitrep", "report"]
_PLANNING = ["planning", "brief", "timeline", "schedule", "preparation", "warning order", "oporder"]
_EXECUTION = ["execution", "maneuver", "movement", "assault", "attack", "defend", "tactical"]
_LEADERSHIP = ["leader", "command", "direction", "guidance", "decision", "accountability"]
_EQUIPMENT = ["equipment", "gear", "weapon", "system", "maintenance", "supply"]
_TRAINING = ["training", "drill", "rehearsal", "practice", "exercise", "qualification"]

SUSTAIN_CONFIG = BucketConfig(
    name="sustain",
    rules=_rules(
        ("Communication", _COMMS),
        ("Planning", _PLANNING),
        ("Execution", _EXECUTION),
        ("Leadership", _LEADERSHIP),
        ("Equipment", _EQUIPMENT),
        ("Training", _TRAINING),
    ),
    default_category="General Observations",
)

IMPROVE_CONFIG = BucketConfig(
    name="improve",
    rules=_rules(
        ("Communication Problems", _COMMS + ["unclear"]),
        ("Planning Challenges", _PLANNING[:5] + ["insufficient", "inadequate"]),
        ("Execution Issues", _EXECUTION[:3] + ["slow", "delayed", "confusion", "disorganized"]),
        ("Leadership Gaps", _LEADERSHIP + ["absence"]),
        ("Equipment Failures", _EQUIPMENT[:5] + ["malfunction", "failure"]),
        ("Training Deficiencies", _TRAINING[:5] + ["insufficient", "lacking"]),
    ),
    default_category="Other Friction",
)

ACTION_CONFIG = BucketConfig(
    name="action",
    rules=_rules(
        ("Communications Training", _COMMS),
        ("Planning Improvement", _PLANNING),
        ("Tactical Execution", _EXECUTION),
        ("Leadership Development", _LEADERSHIP),
        ("Equipment Maintenance", _EQUIPMENT),
        ("Training Programs", _TRAINING),
    ),
    default_category="General Improvements",
)

BUCKET_CONFIGS: Dict[str, BucketConfig] = {
    SUSTAIN_CONFIG.name: SUSTAIN_CONFIG,
    IMPROVE_CONFIG.name: IMPROVE_CONFIG,
    ACTION_CONFIG.name: ACTION_CONFIG,
}


def classify(items: Sequence[AARItem], config: BucketConfig) -> Dict[str, List[AARItem]]:
    """
    Groups items by the first matching category; unmatched items land in the
    bucket's default category so non-empty input never yields an empty map.
    The result follows rule order with the default category last; categories
    without items are omitted.
    """
    grouped: Dict[str, List[AARItem]] = {category: [] for category in config.categories}
    for item in items:
        text = (item.text or "").lower()
        for rule in config.rules:
            if rule.matches(text):
                grouped[rule.category].append(item)
                break
        else:
            grouped[config.default_category].append(item)
    return {category: members for category, members in grouped.items() if members}
