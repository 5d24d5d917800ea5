from greenbook.analysis.classifier import (
    ACTION_CONFIG,
    BUCKET_CONFIGS,
    IMPROVE_CONFIG,
    SUSTAIN_CONFIG,
    BucketConfig,
    CategoryRule,
    classify,
)
from greenbook.analysis.engine import AARAnalysisService
from greenbook.analysis.scoring import InsightScorer

__all__ = [
    "AARAnalysisService",
    "ACTION_CONFIG",
    "BUCKET_CONFIGS",
    "BucketConfig",
    "CategoryRule",
    "IMPROVE_CONFIG",
    "InsightScorer",
    "SUSTAIN_CONFIG",
    "classify",
]
