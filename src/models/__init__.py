"""
Database models.

All models are exported here for convenient imports:
    from src.models import CommissionRunLog, CommissionSettingsRecord
"""

from src.models.base import Base, BaseModel, TimestampMixin
from src.models.commission import CommissionRunLog, CommissionSettingsRecord

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    # Commission
    "CommissionSettingsRecord",
    "CommissionRunLog",
]
