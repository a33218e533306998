"""Shared router dependencies and error mapping."""

import logging

from fastapi import HTTPException, status

from src.engine.errors import MissingRuleTable
from src.services.hubspot_client import CRMConfigurationError, CRMError, HubSpotClient

logger = logging.getLogger(__name__)


def get_crm() -> HubSpotClient:
    """HubSpot client dependency; 503 when no token is configured."""
    try:
        return HubSpotClient()
    except CRMConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e


def http_error(error: Exception) -> HTTPException:
    """Translate a domain error into the HTTP status the API reports."""
    if isinstance(error, MissingRuleTable):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(error),
        )
    if isinstance(error, CRMConfigurationError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(error),
        )
    if isinstance(error, CRMError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(error),
        )
    logger.exception("Unhandled error in API call")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal error",
    )
