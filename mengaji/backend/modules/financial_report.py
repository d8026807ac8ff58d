# mengaji/backend/modules/financial_report.py

from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from ..models.db_models import PaymentStatus
from ..models.report_models import FinancialReport, MonthlyTrend

ZERO = Decimal("0")


def _key(value) -> str:
    # Enum members and raw database strings both end up as the plain value.
    return getattr(value, "value", value)


def merge_monthly_trends(monthly_payments: Mapping[str, Decimal], monthly_donations: Mapping[str, Decimal]) -> List[MonthlyTrend]:
    """
    Joins the per-month payment and donation sums into one row per month.

    A month present in only one source still gets a row; the other value is 0.
    Rows are ordered by month ascending ("YYYY-MM" sorts chronologically).
    """
    months = sorted(set(monthly_payments) | set(monthly_donations))
    return [
        MonthlyTrend(
            month=month,
            payments=monthly_payments.get(month, ZERO),
            donations=monthly_donations.get(month, ZERO),
        )
        for month in months
    ]


def build_financial_report(
    study_center_id: int,
    payments_by_status: Mapping[str, Decimal],
    funds_by_type: Mapping[str, Decimal],
    total_expenses: Optional[Decimal],
    monthly_payments: Mapping[str, Decimal],
    monthly_donations: Mapping[str, Decimal],
) -> FinancialReport:
    """
    Assembles the financial report from already-aggregated sums.

    Args:
        study_center_id: The centre the report is for (echoed back even if it does not exist).
        payments_by_status: Payment amount totals keyed by status, due-date window applied.
        funds_by_type: Fund transaction totals keyed by fund type.
        total_expenses: Sum of material sale prices, or None when there were no sales.
        monthly_payments: Paid payment totals keyed by paid-date month.
        monthly_donations: Fund transaction totals keyed by transaction month.

    Returns:
        A FinancialReport with exact Decimal sums; empty inputs give an all-zero report.
    """
    by_status: Dict[str, Decimal] = {_key(k): v for k, v in payments_by_status.items()}
    by_type: Dict[str, Decimal] = {_key(k): v for k, v in funds_by_type.items()}

    return FinancialReport(
        study_center_id=study_center_id,
        total_payments=by_status.get(PaymentStatus.PAID.value, ZERO),
        total_donations=sum(by_type.values(), ZERO),
        total_expenses=total_expenses if total_expenses is not None else ZERO,
        payments_by_status=by_status,
        funds_by_type=by_type,
        monthly_trends=merge_monthly_trends(monthly_payments, monthly_donations),
    )
