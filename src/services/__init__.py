"""Business logic services."""

from src.services.commission_run import calculate_for_rep, run_monthly, sync_result
from src.services.hubspot_client import CRMConfigurationError, CRMError, HubSpotClient
from src.services.settings_store import load_commission_settings, update_commission_settings

__all__ = [
    "calculate_for_rep",
    "run_monthly",
    "sync_result",
    "HubSpotClient",
    "CRMError",
    "CRMConfigurationError",
    "load_commission_settings",
    "update_commission_settings",
]
