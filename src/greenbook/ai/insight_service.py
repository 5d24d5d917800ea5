import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from greenbook.access.aggregator import AccessAggregator
from greenbook.ai.client import AIResult, BaseAIClient, OfflineAIClient
from greenbook.analysis.engine import AARAnalysisService
from greenbook.config import settings
from greenbook.domain.models import AAR, InsightReport
from greenbook.exceptions import DataSourceError

logger = logging.getLogger(__name__)


@dataclass
class InsightResult:
    report: InsightReport
    source: str  # "remote" | "deterministic" | "fallback" | "cache"
    cached: bool = False

    def to_dict(self) -> dict:
        return {
            "report": self.report.model_dump(by_alias=True),
            "source": self.source,
            "cached": self.cached,
        }


class InsightService:
    """
    Produces the insight report for the AARs a user can see.
    A configured generative service is tried first; any failure, or a missing
    provider, falls back to the rule-based engine. Insufficient data never
    leaves the process.
    """

    def __init__(
        self,
        aggregator: AccessAggregator,
        engine: Optional[AARAnalysisService] = None,
        ai_client: Optional[BaseAIClient] = None,
        cache_ttl_minutes: Optional[int] = None,
    ):
        self.aggregator = aggregator
        self.engine = engine or AARAnalysisService()
        self.ai_client = ai_client or OfflineAIClient()
        self.cache_ttl = timedelta(
            minutes=settings.ai.cache_ttl_minutes if cache_ttl_minutes is None else cache_ttl_minutes
        )
        self._cache: Dict[str, Tuple[datetime, InsightReport]] = {}

    def generate_for_user(self, user_id: int) -> InsightResult:
        return self.generate(self.aggregator.get_accessible_aars(user_id))

    def generate_for_event(self, event_id: int) -> InsightResult:
        return self.generate(self.aggregator.store.list_aars_by_event(event_id))

    def generate_for_unit(self, unit_id: int) -> InsightResult:
        return self.generate(self.aggregator.store.list_aars_by_unit(unit_id))

    def generate(self, aars: Sequence[AAR]) -> InsightResult:
        if len(aars) < self.engine.analysis.min_aars:
            return InsightResult(report=self.engine.insufficient_data_report(len(aars)), source="deterministic")

        if not self.ai_client.available:
            return InsightResult(report=self.engine.analyze(aars), source="deterministic")

        context = self._build_context(aars)
        prompt = self._prompt_template(len(aars))
        cache_key = self._cache_key(prompt, context)
        cached = self._maybe_get_cached(cache_key)
        if cached is not None:
            return InsightResult(report=cached, source="cache", cached=True)

        try:
            result: AIResult = self.ai_client.generate(prompt=prompt, context=context)
            report = self._parse_report(result.content)
        except Exception as exc:
            # Safe deterministic fallback using rule-based analysis
            logger.warning(f"Remote AAR analysis failed, using rule-based fallback: {exc}")
            return InsightResult(report=self.engine.analyze(aars), source="fallback")

        self._store_cached(cache_key, report)
        return InsightResult(report=report, source=result.source)

    def _store_cached(self, cache_key: str, report: InsightReport) -> None:
        now = datetime.now(UTC)
        expired = [key for key, (created_at, _) in self._cache.items() if now - created_at > self.cache_ttl]
        for key in expired:
            del self._cache[key]
        self._cache[cache_key] = (now, report)

    def _maybe_get_cached(self, cache_key: str) -> Optional[InsightReport]:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        created_at, report = entry
        if datetime.now(UTC) - created_at > self.cache_ttl:
            del self._cache[cache_key]
            return None
        return report

    @staticmethod
    def _parse_report(content: str) -> InsightReport:
        try:
            data = json.loads(content)
            return InsightReport.model_validate(data)
        except (ValueError, ValidationError) as exc:
            raise DataSourceError(f"AI response is not a valid insight report: {exc}") from exc

    @staticmethod
    def _build_context(aars: Sequence[AAR]) -> str:
        def texts(items) -> List[str]:
            return [item.text for item in items]

        payload = [
            {
                "id": aar.id,
                "eventId": aar.event_id,
                "unitId": aar.unit_id,
                "sustain": texts(aar.sustain_items),
                "improve": texts(aar.improve_items),
                "action": texts(aar.action_items),
            }
            for aar in aars
        ]
        return json.dumps(payload, ensure_ascii=False)[:12000]  # bound context size

    @staticmethod
    def _prompt_template(count: int) -> str:
        return (
            f"Analyze these {count} After Action Reports from military training events. "
            'Respond with a JSON object with exactly these fields: "trends" '
            '[{"category", "description", "frequency", "severity"}], "frictionPoints" '
            '[{"category", "description", "impact"}], "recommendations" '
            '[{"category", "description", "priority"}]. Severity, impact and priority are Low, Medium or High. '
            "Provide 3-5 specific insights per section grounded in the AAR text."
        )

    @staticmethod
    def _cache_key(prompt: str, context: str) -> str:
        return hashlib.sha256(f"{prompt}|{context}".encode("utf-8")).hexdigest()
