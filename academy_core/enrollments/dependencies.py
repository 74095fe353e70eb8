"""Enrollment ledger dependency."""

from typing import Annotated

from fastapi import Depends

from academy_core.core.dependencies import from_app_state

from .service import EnrollmentLedger


EnrollmentLedgerDep = Annotated[
    EnrollmentLedger, Depends(from_app_state("enrollment_ledger"))
]
