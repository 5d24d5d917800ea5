from typing import List

from fastapi import APIRouter, Depends, HTTPException

from greenbook.access import AccessAggregator
from greenbook.ai import InsightService
from greenbook.api.deps import get_aggregator, get_current_user, get_insight_service
from greenbook.domain.models import Unit, User

router = APIRouter(prefix="/hierarchy", tags=["hierarchy"])


@router.get("/accessible-units", response_model=List[Unit])
def accessible_units(
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
):
    """Units the caller may see under the military hierarchy."""
    return aggregator.get_accessible_units(user.id)


@router.get("/accessible-users", response_model=List[User])
def accessible_users(
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
):
    return aggregator.get_accessible_users(user.id)


@router.get("/units/{unit_id}", response_model=Unit)
def get_unit(
    unit_id: int,
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
):
    unit = aggregator.store.get_unit(unit_id)
    if unit is None:
        raise HTTPException(status_code=404, detail="Unit not found")
    if not aggregator.can_access_unit(user.id, unit_id):
        raise HTTPException(status_code=403, detail="You do not have access to this unit")
    return unit


@router.get("/units/{unit_id}/analysis")
def analyze_unit(
    unit_id: int,
    user: User = Depends(get_current_user),
    aggregator: AccessAggregator = Depends(get_aggregator),
    service: InsightService = Depends(get_insight_service),
):
    """Insight report over the AARs filed by one accessible unit."""
    if aggregator.store.get_unit(unit_id) is None:
        raise HTTPException(status_code=404, detail="Unit not found")
    if not aggregator.can_access_unit(user.id, unit_id):
        raise HTTPException(status_code=403, detail="You do not have access to AARs for this unit")
    return service.generate_for_unit(unit_id).to_dict()
