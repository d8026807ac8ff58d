import logging
from datetime import date
from typing import List, Optional

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Payment, PaymentStatus, FundTransaction, MaterialDistribution, User
from ..models.inputs import (
    PaymentCreate, PaymentUpdate, FundTransactionCreate, FundTransactionQuery,
    MaterialDistributionCreate, MaterialDistributionQuery,
)
from ..models.report_models import FinancialReport
from ..modules.financial_report import build_financial_report
from .base_service import BaseService
from .errors import NotFoundError, InactiveError, InvalidPriceError, UnexpectedPriceError, ValidationFailedError

logger = logging.getLogger(__name__)


class FinanceService(BaseService):
    """
    Payments, fund transactions, material distributions and the financial report.
    """

    async def _require_active_center(self, tx: AsyncPostgresClient, study_center_id: int):
        center = await tx.get_study_center(study_center_id)
        if not center:
            raise NotFoundError(f"Study center {study_center_id} not found.")
        if not center.is_active:
            raise InactiveError(f"Study center {study_center_id} is inactive.")
        return center

    async def _require_active_user(self, tx: AsyncPostgresClient, user_id: int, label: str = "User") -> User:
        user = await tx.get_user(user_id)
        if not user:
            raise NotFoundError(f"{label} {user_id} not found.")
        if not user.is_active:
            raise InactiveError(f"{label} {user_id} is inactive.")
        return user

    # ===== Payments =====

    async def create_payment(self, data: PaymentCreate) -> Payment:
        async def _create(tx: AsyncPostgresClient) -> Payment:
            if not await tx.get_student(data.student_id):
                raise NotFoundError(f"Student {data.student_id} not found.")
            if not await tx.get_study_center(data.study_center_id):
                raise NotFoundError(f"Study center {data.study_center_id} not found.")
            if not await tx.get_user(data.recorded_by):
                raise NotFoundError(f"User {data.recorded_by} not found.")
            return await tx.add_payment(data)

        payment = await self._run_atomic(_create)
        logger.info(f"Payment {payment.id} of {payment.amount} recorded for student {payment.student_id}.")
        return payment

    async def update_payment(self, payment_id: int, data: PaymentUpdate) -> Payment:
        """Only the fields that were sent change. A status set to None is ignored."""
        fields = data.model_dump(exclude_unset=True)
        if "status" in fields and fields["status"] is None:
            del fields["status"]

        async def _update(tx: AsyncPostgresClient) -> Payment:
            if not await tx.get_payment(payment_id):
                raise NotFoundError(f"Payment {payment_id} not found.")
            return await tx.update_payment(payment_id, fields)

        payment = await self._run_atomic(_update)
        logger.info(f"Payment {payment_id} updated: status={payment.status.value}, paid_date={payment.paid_date}")
        return payment

    async def get_payments_by_student(self, student_id: int, status: Optional[PaymentStatus] = None) -> List[Payment]:
        return await self.db_client.get_payments(student_id, status=status)

    # ===== Fund transactions =====

    async def create_fund_transaction(self, data: FundTransactionCreate) -> FundTransaction:
        async def _create(tx: AsyncPostgresClient) -> FundTransaction:
            if not await tx.get_study_center(data.study_center_id):
                raise NotFoundError(f"Study center {data.study_center_id} not found.")
            if not await tx.get_user(data.recorded_by):
                raise NotFoundError(f"User {data.recorded_by} not found.")
            return await tx.add_fund_transaction(data)

        transaction = await self._run_atomic(_create)
        logger.info(f"Fund transaction {transaction.id} ({transaction.fund_type.value}, {transaction.amount}) recorded.")
        return transaction

    async def get_fund_transactions(self, query: FundTransactionQuery) -> List[FundTransaction]:
        return await self.db_client.get_fund_transactions(query)

    # ===== Material distributions =====

    async def create_material_distribution(self, data: MaterialDistributionCreate) -> MaterialDistribution:
        """
        Records a handout or a sale of study material.

        A sale must carry a positive price and a free distribution must carry none.
        """
        if data.quantity <= 0:
            raise ValidationFailedError("Quantity must be a positive integer.")
        if data.is_sale and (data.price is None or data.price <= 0):
            raise InvalidPriceError("Price must be provided and positive for sales.")
        if not data.is_sale and data.price is not None:
            raise UnexpectedPriceError("Price should not be set for free distributions.")

        async def _create(tx: AsyncPostgresClient) -> MaterialDistribution:
            await self._require_active_center(tx, data.study_center_id)
            await self._require_active_user(tx, data.recorded_by)
            if data.recipient_id is not None:
                await self._require_active_user(tx, data.recipient_id, label="Recipient")
            return await tx.add_material_distribution(data)

        distribution = await self._run_atomic(_create)
        logger.info(f"Material distribution {distribution.id} ({distribution.item_name} x{distribution.quantity}) recorded.")
        return distribution

    async def get_material_distributions(self, query: MaterialDistributionQuery) -> List[MaterialDistribution]:
        return await self.db_client.get_material_distributions(query)

    # ===== Reporting =====

    async def get_financial_report(self, study_center_id: int, date_from: Optional[date] = None, date_to: Optional[date] = None) -> FinancialReport:
        """
        Summarises one centre's money over an optional inclusive window.
        An unknown centre gives an all-zero report.
        """
        async def _report(tx: AsyncPostgresClient) -> FinancialReport:
            return build_financial_report(
                study_center_id=study_center_id,
                payments_by_status=await tx.sum_payments_by_status(study_center_id, date_from, date_to),
                funds_by_type=await tx.sum_funds_by_type(study_center_id, date_from, date_to),
                total_expenses=await tx.sum_material_sales(study_center_id, date_from, date_to),
                monthly_payments=await tx.sum_paid_payments_by_month(study_center_id, date_from, date_to),
                monthly_donations=await tx.sum_funds_by_month(study_center_id, date_from, date_to),
            )

        # One snapshot for all five aggregates.
        return await self._run_atomic(_report)
