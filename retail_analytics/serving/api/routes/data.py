"""
Data API Endpoints

Raw dataset access and CSV export uploads.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from retail_analytics.ingestion.exceptions import UploadRejectedError
from retail_analytics.services import ServiceContainer
from retail_analytics.serving.api.dependencies import get_services

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/load")
async def load_data(
    refresh: bool = Query(False, description="Bypass the cache and reload"),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """
    Every cleaned dataset from the uploaded exports.

    Served from the data cache while the export listing is unchanged.
    """
    result = await services.data_cache.get(force_refresh=refresh)
    return {
        "success": True,
        "data": result.value,
        "cached": result.cached,
        "stale": result.stale,
    }


@router.get("/invoices")
async def load_invoices(
    refresh: bool = Query(False, description="Bypass the cache and rescan"),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Invoice line items from the line-item table"""
    result = await services.invoice_cache.get(force_refresh=refresh)
    load = result.value
    return {
        "success": True,
        "data": load.items,
        "count": len(load.items),
        "cached": result.cached,
        "stale": result.stale,
        "complete": load.complete,
    }


@router.post("/upload")
async def upload_export(
    file: UploadFile = File(...),
    data_type: str = Form(...),
    store: str = Form(...),
    start_date: str = Form(...),
    end_date: str = Form(...),
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """
    Store a CSV export for the next data load.

    Returns 400 for an unknown data type or store, or a file without rows.
    """
    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise UploadRejectedError("File is not UTF-8 encoded text") from None

    result = await services.uploads.upload(
        data_type=data_type,
        store_id=store,
        start_date=start_date,
        end_date=end_date,
        filename=file.filename or "upload.csv",
        content=content,
    )

    services.data_cache.invalidate()

    return {
        "success": True,
        "data": {
            "key": result.key,
            "record_count": result.record_count,
            "rejected_count": result.rejected_count,
            "metadata": result.metadata,
        },
    }
