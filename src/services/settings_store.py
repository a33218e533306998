"""
Persistence of the single commission settings row.

The row is created from DEFAULT_SETTINGS the first time it is read. Every
update is validated as a whole (sorted, non-overlapping ranges) before it is
written, so a run never sees a structurally broken table.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.engine.errors import CommissionError
from src.engine.rules import DEFAULT_SETTINGS, CommissionSettings, to_decimal, validate_settings
from src.models import CommissionSettingsRecord
from src.schemas.commission import CommissionSettingsResponse, CommissionSettingsUpdate

logger = logging.getLogger(__name__)

SCALAR_PERCENT_FIELDS = ("sdr_closed_won_percent", "marketing_inbound_percent")


class InvalidSettings(CommissionError):
    """Rejected settings update."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


def _apply(record: CommissionSettingsRecord, values: Dict[str, Any]) -> None:
    for key, value in values.items():
        if key in SCALAR_PERCENT_FIELDS and value is not None:
            value = to_decimal(value)
        setattr(record, key, value)


async def get_settings_record(db: AsyncSession) -> CommissionSettingsRecord:
    """Return the settings row, seeding it with defaults if absent."""
    result = await db.execute(
        select(CommissionSettingsRecord).order_by(CommissionSettingsRecord.id).limit(1)
    )
    record = result.scalar_one_or_none()
    if record is not None:
        return record

    logger.info("Creating default commission settings")
    defaults = CommissionSettingsResponse.model_validate(DEFAULT_SETTINGS)
    record = CommissionSettingsRecord()
    _apply(record, defaults.model_dump(mode="json", exclude={"updated_at"}))
    db.add(record)
    await db.flush()
    return record


async def load_commission_settings(db: AsyncSession) -> CommissionSettings:
    """Read-only rule snapshot for one run."""
    record = await get_settings_record(db)
    return CommissionSettings.from_dict(record.as_rule_dict())


async def update_commission_settings(
    db: AsyncSession,
    data: CommissionSettingsUpdate,
) -> CommissionSettingsRecord:
    """
    Merge a partial update into the stored row.

    Raises:
        InvalidSettings: the merged tables are unsorted or overlapping
    """
    record = await get_settings_record(db)
    changes = data.model_dump(mode="json", exclude_none=True)

    merged = record.as_rule_dict()
    merged.update(changes)
    problems = validate_settings(CommissionSettings.from_dict(merged))
    if problems:
        logger.warning(f"Rejected commission settings update: {problems}")
        raise InvalidSettings(problems)

    _apply(record, changes)
    await db.flush()
    logger.info(f"Commission settings updated: {sorted(changes)}")
    return record


def settings_response(record: CommissionSettingsRecord) -> CommissionSettingsResponse:
    return CommissionSettingsResponse.model_validate(
        {**record.as_rule_dict(), "updated_at": record.updated_at or record.created_at}
    )
