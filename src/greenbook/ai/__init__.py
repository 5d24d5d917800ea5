from greenbook.ai.client import AIResult, BaseAIClient, HTTPAIClient, OfflineAIClient, build_ai_client
from greenbook.ai.insight_service import InsightResult, InsightService

__all__ = [
    "AIResult",
    "BaseAIClient",
    "HTTPAIClient",
    "InsightResult",
    "InsightService",
    "OfflineAIClient",
    "build_ai_client",
]
