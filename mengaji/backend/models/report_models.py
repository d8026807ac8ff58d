from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from decimal import Decimal
from typing import Dict, List


class _CamelModel(BaseModel):
    # The report is consumed by the dashboard with camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonthlyTrend(_CamelModel):
    month: str = Field(..., description="Calendar month as YYYY-MM")
    payments: Decimal = Decimal("0")
    donations: Decimal = Decimal("0")


class FinancialReport(_CamelModel):
    """Summary statistics for one study centre over an optional date window."""
    study_center_id: int
    total_payments: Decimal = Decimal("0")
    total_donations: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    payments_by_status: Dict[str, Decimal] = Field(default_factory=dict)
    funds_by_type: Dict[str, Decimal] = Field(default_factory=dict)
    monthly_trends: List[MonthlyTrend] = Field(default_factory=list)
