from fastapi import APIRouter, Depends, HTTPException

from greenbook.access import AccessAggregator
from greenbook.ai import InsightService
from greenbook.api.deps import get_aggregator, get_current_user, get_insight_service
from greenbook.domain.models import User

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/{event_id}/analysis")
def analyze_event(
    event_id: int,
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
    service: InsightService = Depends(get_insight_service),
):
    if aggregator.store.get_event(event_id) is None:
        raise HTTPException(status_code=404, detail="Event not found")
    if not aggregator.can_access_event(user.id, event_id):
        raise HTTPException(status_code=403, detail="You do not have access to AARs for this event")
    return service.generate_for_event(event_id).to_dict()
