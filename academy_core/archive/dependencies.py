"""Archive manager dependency."""

from typing import Annotated

from fastapi import Depends

from academy_core.core.dependencies import from_app_state

from .service import ArchiveLifecycleManager


ArchiveManagerDep = Annotated[
    ArchiveLifecycleManager, Depends(from_app_state("archive_manager"))
]
