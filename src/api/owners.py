"""CRM owner listing."""

from typing import List

from fastapi import APIRouter, Depends

from src.api.deps import get_crm, http_error
from src.schemas import OwnerResponse
from src.services.attribution import owner_summary, rep_from_owner
from src.services.hubspot_client import CRMError, HubSpotClient

router = APIRouter(prefix="/owners", tags=["Owners"])


@router.get("", response_model=List[OwnerResponse])
async def list_owners(crm: HubSpotClient = Depends(get_crm)):
    """HubSpot owners with their resolved team."""
    try:
        owners = await crm.list_owners()
    except CRMError as e:
        raise http_error(e)

    return [owner_summary(rep_from_owner(owner)) for owner in owners]
