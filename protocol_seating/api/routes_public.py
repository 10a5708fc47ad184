"""
Public API routes - no authentication required
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from protocol_seating.services.excel_service import ExcelService
from protocol_seating.utils.security import rate_limit_check, get_client_ip
from protocol_seating.utils.responses import rate_limit_error

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/template.xlsx")
async def download_template(request: Request):
    """Download the guest list Excel template"""
    if not rate_limit_check(get_client_ip(request), bucket="template"):
        return rate_limit_error()

    return Response(
        content=ExcelService.create_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=guest_list_template.xlsx"}
    )
