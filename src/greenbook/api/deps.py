from __future__ import annotations

from typing import Generator, Optional

from fastapi import Header, HTTPException

from greenbook.access import AccessAggregator, HierarchyPolicy
from greenbook.ai import InsightService, build_ai_client
from greenbook.analysis import AARAnalysisService
from greenbook.config import settings
from greenbook.data import InMemoryStore
from greenbook.domain.models import User

# Global/Cached instances
_store_instance: Optional[InMemoryStore] = None
_policy_instance: Optional[HierarchyPolicy] = None
_insight_instance: Optional[InsightService] = None


def get_store() -> InMemoryStore:
    global _store_instance
    if _store_instance is None:
        _store_instance = InMemoryStore.from_file(settings.paths.data_file)
    return _store_instance


def get_policy() -> HierarchyPolicy:
    global _policy_instance
    if _policy_instance is None:
        _policy_instance = HierarchyPolicy.from_settings(settings)
    return _policy_instance


def get_aggregator() -> Generator[AccessAggregator, None, None]:
    yield AccessAggregator(store=get_store(), policy=get_policy(), access=settings.access)


def get_insight_service() -> InsightService:
    # Cached so the remote-analysis cache survives across requests.
    global _insight_instance
    if _insight_instance is None:
        aggregator = AccessAggregator(store=get_store(), policy=get_policy(), access=settings.access)
        _insight_instance = InsightService(
            aggregator=aggregator,
            engine=AARAnalysisService(),
            ai_client=build_ai_client(settings),
        )
    return _insight_instance


def reset_cache() -> None:
    global _store_instance, _policy_instance, _insight_instance
    _store_instance = None
    _policy_instance = None
    _insight_instance = None


def get_current_user(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> User:
    """
    Identity is established by the upstream auth layer and forwarded as X-User-Id.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing authentication")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid user id")

    user = get_store().get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown or deleted user")
    return user
