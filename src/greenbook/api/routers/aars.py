from typing import List

from fastapi import APIRouter, Depends, HTTPException

from greenbook.access import AccessAggregator
from greenbook.ai import InsightService
from greenbook.api.deps import get_aggregator, get_current_user, get_insight_service
from greenbook.domain.models import AAR, User

router = APIRouter(prefix="/aars", tags=["aars"])


@router.get("/accessible", response_model=List[AAR])
def accessible_aars(
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
):
    """
    AARs visible through the unit hierarchy, event participation or authorship.
    """
    return aggregator.get_accessible_aars(user.id)


@router.get("/analysis")
def analyze_accessible_aars(
    user: User = Depends(get_current_user),
    service: InsightService = Depends(get_insight_service),
):
    """Insight report (trends, friction points, recommendations) over the caller's AARs."""
    return service.generate_for_user(user.id).to_dict()


@router.get("/{aar_id}", response_model=AAR)
def get_aar(
    aar_id: int,
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
):
    aar = aggregator.store.get_aar(aar_id)
    if aar is None:
        raise HTTPException(status_code=404, detail="AAR not found")
    if not aggregator.can_access_aar(user.id, aar_id):
        raise HTTPException(status_code=403, detail="You do not have access to this AAR")
    return aar
