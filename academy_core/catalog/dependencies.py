"""Catalog service dependency."""

from typing import Annotated

from fastapi import Depends

from academy_core.core.dependencies import from_app_state

from .service import CatalogService


CatalogServiceDep = Annotated[
    CatalogService, Depends(from_app_state("catalog_service"))
]
