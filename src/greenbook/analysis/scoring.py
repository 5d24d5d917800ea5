import hashlib
import random
import re
from typing import Dict, List, Optional, Sequence

from greenbook.config import AnalysisSettings, ThresholdSettings, settings
from greenbook.domain.models import AARItem, FrictionPoint, Recommendation, Trend

INSUFFICIENT_DATA = "Insufficient Data"

_SENTENCE_SPLIT = re.compile(r"[.!?]")

CANNED_RECOMMENDATIONS: Dict[str, str] = {
    "Communications Training": (
        "Implement weekly radio check procedures and standardize communications protocols across all units."
    ),
    "Planning Improvement": (
        "Institute a standardized planning timeline with specific checkpoints for OPORDER development, "
        "rehearsals, and PCCs/PCIs."
    ),
    "Tactical Execution": (
        "Conduct quarterly tactical exercises focusing specifically on maneuver techniques and battle drills."
    ),
    "Leadership Development": (
        "Establish monthly leadership professional development sessions with practical decision-making scenarios."
    ),
    "Equipment Maintenance": (
        "Implement weekly equipment maintenance checks with detailed accountability procedures and "
        "preventative maintenance training."
    ),
    "Training Programs": (
        "Develop progressive training programs that build fundamental skills before advancing to complex "
        "scenarios and exercises."
    ),
}


def _label(percentage: float, high: float, medium: float) -> str:
    if percentage > high:
        return "High"
    if percentage > medium:
        return "Medium"
    return "Low"


def _ratio(count: int, total: int) -> float:
    return count / total if total else 0.0


def severity_label(count: int, total: int, thresholds: Optional[ThresholdSettings] = None) -> str:
    t = thresholds or settings.thresholds
    return _label(_ratio(count, total), t.severity_high, t.severity_medium)


def impact_label(count: int, total: int, thresholds: Optional[ThresholdSettings] = None) -> str:
    t = thresholds or settings.thresholds
    return _label(_ratio(count, total), t.impact_high, t.impact_medium)


def priority_label(count: int, total: int, thresholds: Optional[ThresholdSettings] = None) -> str:
    t = thresholds or settings.thresholds
    return _label(_ratio(count, total), t.priority_high, t.priority_medium)


def extract_key_phrases(
    items: Sequence[AARItem],
    count: int,
    min_length: int = 10,
    max_length: int = 100,
) -> List[str]:
    """
    Picks up to `count` distinct representative sentences from the items.

    Sentences are sampled without replacement from an RNG seeded by the item
    texts, so the same items always yield the same phrases. Only sentences
    strictly between `min_length` and `max_length` characters qualify.
    """
    sentences = [
        part.strip()
        for item in items
        for part in _SENTENCE_SPLIT.split(item.text or "")
        if part.strip()
    ]
    if not sentences or count <= 0:
        return []

    seed = hashlib.sha256("\x1f".join(item.text or "" for item in items).encode("utf-8")).hexdigest()
    rng = random.Random(seed)
    selected: List[str] = []
    for sentence in rng.sample(sentences, len(sentences)):
        if min_length < len(sentence) < max_length and sentence not in selected:
            selected.append(sentence)
            if len(selected) == count:
                break
    return selected


def trend_description(category: str, phrases: Sequence[str]) -> str:
    if phrases:
        return f"Multiple AARs highlight {category.lower()} strengths including: {'; '.join(phrases)}."
    return f"Multiple AARs highlight effective {category.lower()} practices."


def friction_description(category: str, phrases: Sequence[str]) -> str:
    if phrases:
        return f"Recurring {category.lower()} identified in multiple AARs: {'; '.join(phrases)}."
    return f"Recurring {category.lower()} require attention based on AAR data."


def recommendation_description(category: str, phrases: Sequence[str]) -> str:
    canned = CANNED_RECOMMENDATIONS.get(category)
    if canned:
        return canned
    if phrases:
        return f"Implement the following improvements: {'; '.join(phrases)}."
    return f"Develop structured training for {category.lower()}."


def insufficient_data_trend(count: int, minimum: int = 3, noun: str = "AAR") -> Trend:
    if count == 0:
        description = (
            "To generate training insights, complete AARs for your training events. The analysis system "
            "requires multiple AARs to identify patterns and generate meaningful recommendations."
        )
    else:
        description = (
            f"Currently analyzing {count} {noun}(s). For more accurate insights, complete at least {minimum} {noun}s. "
            "Additional data will enable the system to identify meaningful patterns across multiple training events."
        )
    return Trend(category=INSUFFICIENT_DATA, description=description, frequency=count, severity="Medium")


class InsightScorer:
    """
    Turns classified item groups into scored, described and ordered insights.
    """

    def __init__(
        self,
        analysis: Optional[AnalysisSettings] = None,
        thresholds: Optional[ThresholdSettings] = None,
    ):
        self.analysis = analysis or settings.analysis
        self.thresholds = thresholds or settings.thresholds

    def _phrases(self, items: Sequence[AARItem], count: int) -> List[str]:
        return extract_key_phrases(
            items,
            count,
            min_length=self.analysis.phrase_min_length,
            max_length=self.analysis.phrase_max_length,
        )

    def score_trends(self, grouped: Dict[str, List[AARItem]]) -> List[Trend]:
        total = sum(len(items) for items in grouped.values())
        trends = [
            Trend(
                category=category,
                description=trend_description(category, self._phrases(items, self.analysis.max_phrases)),
                frequency=len(items),
                severity=severity_label(len(items), total, self.thresholds),
            )
            for category, items in grouped.items()
        ]
        # sorted() is stable: equal frequencies keep category order
        trends = sorted(trends, key=lambda t: t.frequency, reverse=True)
        return trends[: self.analysis.max_insights]

    def score_friction(self, grouped: Dict[str, List[AARItem]]) -> List[FrictionPoint]:
        total = sum(len(items) for items in grouped.values())
        points = [
            FrictionPoint(
                category=category,
                description=friction_description(category, self._phrases(items, self.analysis.max_phrases)),
                impact=impact_label(len(items), total, self.thresholds),
            )
            for category, items in grouped.items()
        ]
        # description length stands in for how much detail the AARs gave
        points = sorted(points, key=lambda p: len(p.description), reverse=True)
        return points[: self.analysis.max_insights]

    def score_recommendations(self, grouped: Dict[str, List[AARItem]]) -> List[Recommendation]:
        total = sum(len(items) for items in grouped.values())
        recommendations = []
        for category, items in grouped.items():
            # count/count always rates High; kept for report compatibility
            denominator = total if self.analysis.priority_uses_bucket_total else len(items)
            recommendations.append(
                Recommendation(
                    category=category,
                    description=recommendation_description(
                        category, self._phrases(items, self.analysis.max_recommendation_phrases)
                    ),
                    priority=priority_label(len(items), denominator, self.thresholds),
                )
            )
        recommendations = sorted(recommendations, key=lambda r: r.category)
        return recommendations[: self.analysis.max_insights]
