import logging
from typing import List, Optional, Sequence

from greenbook.analysis.classifier import ACTION_CONFIG, BUCKET_CONFIGS, IMPROVE_CONFIG, SUSTAIN_CONFIG, classify
from greenbook.analysis.scoring import InsightScorer, insufficient_data_trend
from greenbook.config import AnalysisSettings, settings
from greenbook.domain.models import AAR, AARItem, FrictionPoint, InsightReport, Recommendation, Trend

logger = logging.getLogger(__name__)


class AARAnalysisService:
    """
    Deterministic, keyword-driven analysis of After Action Reviews.
    Used directly, and as the fallback when no generative service is reachable.
    """

    def __init__(self, scorer: Optional[InsightScorer] = None, analysis: Optional[AnalysisSettings] = None):
        self.analysis = analysis or settings.analysis
        self.scorer = scorer or InsightScorer(analysis=self.analysis)

    def analyze(self, aars: Sequence[AAR]) -> InsightReport:
        if len(aars) < self.analysis.min_aars:
            logger.info(f"Only {len(aars)} AAR(s) available, returning insufficient data report")
            return self.insufficient_data_report(len(aars))

        sustains: List[AARItem] = []
        improves: List[AARItem] = []
        actions: List[AARItem] = []
        for aar in aars:
            sustains.extend(aar.sustain_items)
            improves.extend(aar.improve_items)
            actions.extend(aar.action_items)

        logger.debug(
            f"Analyzing {len(aars)} AARs: {len(sustains)} sustain, {len(improves)} improve, {len(actions)} action items"
        )
        return InsightReport(
            trends=self.analyze_trends(sustains),
            friction_points=self.analyze_friction(improves),
            recommendations=self.generate_recommendations(actions, improves),
        )

    def insufficient_data_report(self, count: int) -> InsightReport:
        return InsightReport(trends=[insufficient_data_trend(count, self.analysis.min_aars)])

    def analyze_trends(self, sustain_items: Sequence[AARItem]) -> List[Trend]:
        if len(sustain_items) < self.analysis.min_bucket_items:
            return [insufficient_data_trend(len(sustain_items), self.analysis.min_bucket_items, noun="sustain item")]
        return self.scorer.score_trends(classify(sustain_items, SUSTAIN_CONFIG))

    def analyze_friction(self, improve_items: Sequence[AARItem]) -> List[FrictionPoint]:
        if len(improve_items) < self.analysis.min_bucket_items:
            return []
        return self.scorer.score_friction(classify(improve_items, IMPROVE_CONFIG))

    def generate_recommendations(
        self, action_items: Sequence[AARItem], improve_items: Sequence[AARItem]
    ) -> List[Recommendation]:
        # Improve items stand in when too few action items were recorded.
        minimum = self.analysis.min_bucket_items
        items = action_items if len(action_items) >= minimum else improve_items
        if len(items) < minimum:
            return []
        return self.scorer.score_recommendations(classify(items, ACTION_CONFIG))

    def analyze_items(self, items: Sequence[AARItem], bucket: str = "sustain") -> InsightReport:
        """Scores a single bucket of items, e.g. for a per-event drilldown."""
        if bucket not in BUCKET_CONFIGS:
            logger.warning(f"Unknown bucket {bucket!r}; returning an empty report")
            return InsightReport()
        if bucket == "sustain":
            return InsightReport(trends=self.analyze_trends(items))
        if bucket == "improve":
            return InsightReport(friction_points=self.analyze_friction(items))
        return InsightReport(recommendations=self.generate_recommendations(items, []))
