from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from app.dependencies import (
    get_lifecycle_service,
    get_query_service,
    get_reconciliation_service,
    get_schedule_service,
)
from app.schemas.installment_schema import (
    ContractTermsRequest,
    InstallmentPageResponse,
    InstallmentResponse,
    InstallmentUpdateRequest,
    PaymentRequest,
    ReconciliationResponse,
    SummaryResponse,
)
from application.service.contract_schedule import ContractScheduleService
from application.service.installment_lifecycle import InstallmentLifecycleService
from application.service.installment_queries import InstallmentQueryService
from application.service.overdue_reconciliation import OverdueReconciliationService
from domain.exceptions import (
    AlreadyPaidError,
    AmountToleranceError,
    InstallmentEngineError,
    InvalidPaymentModeError,
    NotFoundError,
    PaidHistoryError,
    ValidationError,
)

router = APIRouter(prefix="/v1")

_ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (AlreadyPaidError, status.HTTP_409_CONFLICT, "already_paid"),
    (PaidHistoryError, status.HTTP_409_CONFLICT, "paid_history"),
    (AmountToleranceError, status.HTTP_422_UNPROCESSABLE_ENTITY, "amount_tolerance_exceeded"),
    (InvalidPaymentModeError, status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_payment_mode"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
]


def to_http_exception(exc: InstallmentEngineError) -> HTTPException:
    for error_type, status_code, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail={"error": code, "message": str(exc)})
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "installment_engine_error", "message": str(exc)},
    )


async def engine_error_handler(request: Request, exc: InstallmentEngineError) -> JSONResponse:
    http_exc = to_http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


def _responses(installments) -> list[InstallmentResponse]:
    return [InstallmentResponse.from_domain(inst) for inst in installments]


# Contract schedules

@router.post("/contracts/{contract_id}/schedule", status_code=status.HTTP_201_CREATED)
async def create_schedule(
    contract_id: str,
    payload: ContractTermsRequest,
    srv: ContractScheduleService = Depends(get_schedule_service),
) -> list[InstallmentResponse]:
    """Generate and persist the schedule of a new contract."""
    installments = await srv.create_schedule(contract_id, payload.to_domain())
    return _responses(installments)


@router.post("/contracts/{contract_id}/schedule/regenerate")
async def regenerate_schedule(
    contract_id: str,
    payload: ContractTermsRequest,
    force: bool = Query(False, description="Discard paid installments as well"),
    srv: ContractScheduleService = Depends(get_schedule_service),
) -> list[InstallmentResponse]:
    """
    Replace the schedule after the contract terms changed.

    Without `force` the request is refused with 409 when any installment is paid.
    """
    installments = await srv.regenerate_schedule(contract_id, payload.to_domain(), force=force)
    return _responses(installments)


@router.post("/contracts/{contract_id}/schedule/preview")
async def preview_schedule(
    contract_id: str,
    payload: ContractTermsRequest,
    srv: ContractScheduleService = Depends(get_schedule_service),
) -> list[InstallmentResponse]:
    """Show the schedule the terms would produce, without saving it."""
    return _responses(srv.preview_schedule(contract_id, payload.to_domain()))


@router.get("/contracts/{contract_id}/installments")
async def contract_installments(
    contract_id: str,
    srv: InstallmentQueryService = Depends(get_query_service),
) -> list[InstallmentResponse]:
    return _responses(await srv.list_for_contract(contract_id))


# Installments

@router.get("/installments")
async def list_installments(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    contract_id: Optional[str] = Query(None),
    srv: InstallmentQueryService = Depends(get_query_service),
) -> InstallmentPageResponse:
    filters = {}
    if status_filter is not None:
        filters["status"] = status_filter
    if month is not None:
        filters["month"] = month
    if year is not None:
        filters["year"] = year
    if contract_id is not None:
        filters["contract_id"] = contract_id

    result = await srv.search(page=page, page_size=page_size, filters=filters)
    return InstallmentPageResponse(
        items=_responses(result.items),
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/installments/overdue")
async def overdue_installments(srv: InstallmentQueryService = Depends(get_query_service)) -> list[InstallmentResponse]:
    return _responses(await srv.overdue())


@router.get("/installments/upcoming")
async def upcoming_installments(
    days: int = Query(7, ge=0),
    srv: InstallmentQueryService = Depends(get_query_service),
) -> list[InstallmentResponse]:
    """Scheduled installments due within the next `days` days."""
    return _responses(await srv.upcoming(days=days))


@router.get("/installments/summary")
async def installments_summary(
    contract_id: Optional[str] = Query(None),
    srv: InstallmentQueryService = Depends(get_query_service),
) -> SummaryResponse:
    return SummaryResponse.from_domain(await srv.summary(contract_id))


@router.get("/installments/{installment_id}")
async def get_installment(
    installment_id: str,
    srv: InstallmentQueryService = Depends(get_query_service),
) -> InstallmentResponse:
    return InstallmentResponse.from_domain(await srv.get(installment_id))


@router.put("/installments/{installment_id}")
async def update_installment(
    installment_id: str,
    payload: InstallmentUpdateRequest,
    srv: InstallmentLifecycleService = Depends(get_lifecycle_service),
) -> InstallmentResponse:
    """Partial update: only the fields present in the body are changed."""
    installment = await srv.update_installment(installment_id, payload.to_changes())
    return InstallmentResponse.from_domain(installment)


@router.post("/installments/{installment_id}/pay")
async def pay_installment(
    installment_id: str,
    payload: PaymentRequest,
    srv: InstallmentLifecycleService = Depends(get_lifecycle_service),
) -> InstallmentResponse:
    """
    Record the payment of an installment.

    Returns 409 if the installment is already paid and 422 if the amount
    exceeds the expected amount by more than the tolerance.
    """
    installment = await srv.record_payment(
        installment_id,
        payment_date=payload.payment_date,
        paid_amount=payload.paid_amount,
        receipt_method=payload.receipt_method,
    )
    return InstallmentResponse.from_domain(installment)


@router.post("/installments/{installment_id}/cancel")
async def cancel_installment(
    installment_id: str,
    srv: InstallmentLifecycleService = Depends(get_lifecycle_service),
) -> InstallmentResponse:
    return InstallmentResponse.from_domain(await srv.cancel_installment(installment_id))


# Reconciliation

@router.post("/reconciliation/run")
async def run_reconciliation(
    as_of: Optional[date] = Query(None),
    srv: OverdueReconciliationService = Depends(get_reconciliation_service),
) -> ReconciliationResponse:
    """Run the overdue reconciliation now (normally triggered daily)."""
    as_of = as_of or date.today()
    transitioned = await srv.reconcile_overdue(as_of)
    return ReconciliationResponse(as_of=as_of, transitioned=transitioned)
