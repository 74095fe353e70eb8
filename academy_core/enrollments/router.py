"""Enrollment endpoints.

Provides routes for:
- Recording purchase confirmations (payment integration, admin token)
- Listing the caller's enrollments
"""

from fastapi import APIRouter

from academy_core.auth.dependencies import AdminUser, CurrentUser
from academy_core.core.logging import get_logger

from .dependencies import EnrollmentLedgerDep
from .schemas import EnrollmentListResponse, EnrollmentResponse, RecordPurchaseRequest


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.post(
    "/purchases",
    response_model=EnrollmentResponse,
    summary="Record purchase",
)
async def record_purchase(
    data: RecordPurchaseRequest,
    ledger: EnrollmentLedgerDep,
    _admin: AdminUser,
) -> EnrollmentResponse:
    """Enroll the buyer. Repeating the same confirmation returns the same enrollment."""
    logger.info(
        "purchase_confirmation_received",
        course_id=str(data.course_id),
        user_id=str(data.user_id),
        payment_reference=data.payment_reference,
    )
    record = await ledger.record_purchase(data.course_id, data.user_id)
    return EnrollmentResponse.from_entity(record)


@router.get(
    "/me",
    response_model=EnrollmentListResponse,
    summary="My enrollments",
)
async def my_enrollments(
    ledger: EnrollmentLedgerDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    records = await ledger.list_user_enrollments(user.user_id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(r) for r in records],
        total=len(records),
    )
