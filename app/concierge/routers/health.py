from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from app.concierge.core.config import settings
from app.concierge.core.error_catalog import ErrorCatalog
from app.concierge.core.errors import error_response
from app.concierge.db.session import get_db

router = APIRouter()


def _integrations() -> dict[str, bool]:
    return {
        "mail": bool(settings.MAIL_API_KEY and settings.MAIL_FROM),
        "device_management": bool(
            settings.DEVICE_MGMT_URL and settings.DEVICE_MGMT_USER and settings.DEVICE_MGMT_PASSWORD
        ),
    }


@router.get("/health")
async def health(request: Request):
    return {"status": "ok", "service": settings.APP_NAME, "trace_id": getattr(request.state, "trace_id", "")}


@router.get("/ready")
def ready(request: Request, db=Depends(get_db)):
    """Database round trip plus which outbound integrations are configured.

    Unconfigured integrations do not fail readiness; their side effects are skipped.
    """
    trace_id = getattr(request.state, "trace_id", "")
    try:
        db.execute(text("SELECT 1"))
    except Exception as exc:
        return error_response(
            code=ErrorCatalog.DB_UNAVAILABLE.code,
            message=ErrorCatalog.DB_UNAVAILABLE.message,
            details={"message": str(exc)},
            trace_id=trace_id,
            status_code=ErrorCatalog.DB_UNAVAILABLE.status_code,
        )
    return {"status": "ready", "integrations": _integrations(), "trace_id": trace_id}
