import logging
from fastapi import APIRouter, Depends, status, Request, Query
from datetime import date
from typing import List, Optional

from ..config.config import settings
from ..models.db_models import Payment, PaymentStatus, FundTransaction, MaterialDistribution, MaterialType, FundType, Role
from ..models.inputs import (
    PaymentCreate, PaymentUpdate, FundTransactionCreate, FundTransactionQuery,
    MaterialDistributionCreate, MaterialDistributionQuery,
)
from ..models.redis_models import SessionUser
from ..models.report_models import FinancialReport
from ..services.finance_service import FinanceService
from ..services.center_service import CenterService
from ..services.errors import AuthorizationError
from .dependencies import get_finance_service, get_center_service
from .utilities.limiter import limiter
from .utilities.permissions import Operation, require

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Finance"])

# === Payments ===

@router.post("/payments", response_model=Payment, status_code=status.HTTP_201_CREATED, summary="Record a payment due")
@limiter.limit("30/minute")
async def create_payment(request: Request, body: PaymentCreate, user: SessionUser = Depends(require(Operation.CREATE_PAYMENT)), service: FinanceService = Depends(get_finance_service)):
    return await service.create_payment(body)

@router.patch("/payments/{payment_id}", response_model=Payment, summary="Update a payment's status or paid date")
@limiter.limit("30/minute")
async def update_payment(request: Request, payment_id: int, body: PaymentUpdate, user: SessionUser = Depends(require(Operation.UPDATE_PAYMENT)), service: FinanceService = Depends(get_finance_service)):
    return await service.update_payment(payment_id, body)

@router.get("/students/{student_id}/payments", response_model=List[Payment], summary="List a student's payments")
@limiter.limit("60/minute")
async def get_payments_by_student(
    request: Request,
    student_id: int,
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    user: SessionUser = Depends(require(Operation.LIST_PAYMENTS)),
    service: FinanceService = Depends(get_finance_service),
    center_service: CenterService = Depends(get_center_service),
):
    # Students only see their own payments.
    if user.role == Role.STUDENT:
        profile = await center_service.get_student_profile(user.id)
        if profile is None or profile.id != student_id:
            logger.warning(f"User {user.id} tried to read the payments of student {student_id}.")
            raise AuthorizationError("You can only view your own payments.")
    return await service.get_payments_by_student(student_id, status=payment_status)

# === Fund transactions ===

@router.post("/fund-transactions", response_model=FundTransaction, status_code=status.HTTP_201_CREATED, summary="Record a donation or fund contribution")
@limiter.limit("30/minute")
async def create_fund_transaction(request: Request, body: FundTransactionCreate, user: SessionUser = Depends(require(Operation.CREATE_FUND_TRANSACTION)), service: FinanceService = Depends(get_finance_service)):
    return await service.create_fund_transaction(body)

@router.get("/fund-transactions", response_model=List[FundTransaction], summary="List fund transactions, newest first")
@limiter.limit("60/minute")
async def get_fund_transactions(
    request: Request,
    study_center_id: Optional[int] = None,
    fund_type: Optional[FundType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, gt=0),
    offset: int = Query(0, ge=0),
    user: SessionUser = Depends(require(Operation.LIST_FUND_TRANSACTIONS)),
    service: FinanceService = Depends(get_finance_service),
):
    query = FundTransactionQuery(
        study_center_id=study_center_id, fund_type=fund_type,
        date_from=date_from, date_to=date_to, limit=limit, offset=offset,
    )
    return await service.get_fund_transactions(query)

# === Material distributions ===

@router.post("/material-distributions", response_model=MaterialDistribution, status_code=status.HTTP_201_CREATED, summary="Record a material handout or sale")
@limiter.limit("30/minute")
async def create_material_distribution(request: Request, body: MaterialDistributionCreate, user: SessionUser = Depends(require(Operation.CREATE_MATERIAL_DISTRIBUTION)), service: FinanceService = Depends(get_finance_service)):
    return await service.create_material_distribution(body)

@router.get("/material-distributions", response_model=List[MaterialDistribution], summary="List material distributions, newest first")
@limiter.limit("60/minute")
async def get_material_distributions(
    request: Request,
    study_center_id: Optional[int] = None,
    material_type: Optional[MaterialType] = None,
    is_sale: Optional[bool] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, gt=0),
    offset: int = Query(0, ge=0),
    user: SessionUser = Depends(require(Operation.LIST_MATERIAL_DISTRIBUTIONS)),
    service: FinanceService = Depends(get_finance_service),
):
    query = MaterialDistributionQuery(
        study_center_id=study_center_id, material_type=material_type, is_sale=is_sale,
        date_from=date_from, date_to=date_to, limit=limit, offset=offset,
    )
    return await service.get_material_distributions(query)

# === Report ===

@router.get("/centers/{study_center_id}/financial-report", response_model=FinancialReport, summary="Financial summary of a study center")
@limiter.limit("20/minute")
async def get_financial_report(
    request: Request,
    study_center_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    user: SessionUser = Depends(require(Operation.VIEW_FINANCIAL_REPORT)),
    service: FinanceService = Depends(get_finance_service),
):
    return await service.get_financial_report(study_center_id, date_from=date_from, date_to=date_to)
