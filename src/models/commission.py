"""
Commission settings and run log models.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, BaseModel


class CommissionSettingsRecord(BaseModel):
    """
    Single-row commission rule configuration.

    Bracket tables are JSON lists of {min, max, <value>} objects with
    numbers stored as strings to keep Decimal precision. A NULL table is
    "missing" and makes runs for the affected team fail loudly.
    """

    __tablename__ = "commission_settings"
    __mapper_args__ = {"eager_defaults": True}

    ae_brackets: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)
    ae_payment_term_bonuses: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(
        JSON,
        nullable=True,
    )
    ae_revenue_multiplier_brackets: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(
        JSON,
        nullable=True,
    )
    sdr_meeting_tiers: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)
    sdr_closed_won_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
    )
    sdr_revenue_multiplier_brackets: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(
        JSON,
        nullable=True,
    )
    marketing_same_as_sdr: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    marketing_inbound_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
    )
    marketing_revenue_multiplier_brackets: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(
        JSON,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<CommissionSettingsRecord(id={self.id})>"

    def as_rule_dict(self) -> Dict[str, Any]:
        """Column values in the shape CommissionSettings.from_dict expects."""
        return {
            "ae_brackets": self.ae_brackets,
            "ae_payment_term_bonuses": self.ae_payment_term_bonuses,
            "ae_revenue_multiplier_brackets": self.ae_revenue_multiplier_brackets,
            "sdr_meeting_tiers": self.sdr_meeting_tiers,
            "sdr_closed_won_percent": self.sdr_closed_won_percent,
            "sdr_revenue_multiplier_brackets": self.sdr_revenue_multiplier_brackets,
            "marketing_same_as_sdr": self.marketing_same_as_sdr,
            "marketing_inbound_percent": self.marketing_inbound_percent,
            "marketing_revenue_multiplier_brackets": self.marketing_revenue_multiplier_brackets,
        }


class CommissionRunLog(Base):
    """
    One engine invocation for one rep, successful or not.

    commission_json holds the serialized CommissionResult; it is the only
    audit trail of a run.
    """

    __tablename__ = "commission_run_logs"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    rep_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rep_name: Mapped[str] = mapped_column(String(255), nullable=False)
    team: Mapped[str] = mapped_column(String(50), nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    commission_json: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    crm_record_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="HubSpot commission statement id when synced",
    )

    def __repr__(self) -> str:
        return (
            f"<CommissionRunLog(id={self.id}, rep_id='{self.rep_id}', "
            f"success={self.success})>"
        )
