# backend/studio/routes/v1/packages.py
"""
Package routes - API v1

Endpoints:
    GET /{package_id}/ledger - Read-only ledger snapshot
    POST /{package_id}/reconcile - Recompute and repair the stored counter
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.params import Path

from ...api.dependencies import get_package_service
from ...core.exceptions import DomainException
from ...schemas.package import PackageLedgerResponse, PackageReconcileResponse
from ...services.package_service import PackageService
from .bookings import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["packages-v1"])


@router.get("/{package_id}/ledger", response_model=PackageLedgerResponse)
async def get_package_ledger(
    package_id: str = Path(..., description="Package ULID", pattern=ULID_PATH_PATTERN),
    package_service: PackageService = Depends(get_package_service),
) -> PackageLedgerResponse:
    try:
        ledger = await asyncio.to_thread(package_service.get_ledger, package_id)
        return PackageLedgerResponse(**ledger)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{package_id}/reconcile", response_model=PackageReconcileResponse)
async def reconcile_package(
    package_id: str = Path(..., description="Package ULID", pattern=ULID_PATH_PATTERN),
    package_service: PackageService = Depends(get_package_service),
) -> PackageReconcileResponse:
    """Rebuild the ledger from booking history; 500 if the history is inconsistent."""
    try:
        result = await asyncio.to_thread(package_service.reconcile_package, package_id)
        return PackageReconcileResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)
