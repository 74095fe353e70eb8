"""Progress service dependency."""

from typing import Annotated

from fastapi import Depends

from academy_core.core.dependencies import from_app_state

from .service import ProgressService


ProgressServiceDep = Annotated[
    ProgressService, Depends(from_app_state("progress_service"))
]
