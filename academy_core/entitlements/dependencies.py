"""Entitlement service dependency."""

from typing import Annotated

from fastapi import Depends

from academy_core.core.dependencies import from_app_state

from .service import EntitlementService


EntitlementServiceDep = Annotated[
    EntitlementService, Depends(from_app_state("entitlement_service"))
]
