from fastapi import APIRouter, Depends

from app.concierge.core.deps import require_admin
from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.db.session import get_db
from app.concierge.repos.email_logs import EmailLogRepository
from app.concierge.schemas.emails import EmailLogResponse
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES

router = APIRouter()


@router.get("/api/emails/{log_id}", response_model=EmailLogResponse, responses=STANDARD_ERROR_RESPONSES)
def get_email_log(log_id: str, db=Depends(get_db), current_user=Depends(require_admin)):
    log = EmailLogRepository(db).get_by_id(log_id)
    if log is None:
        raise AppError(ErrorCatalog.EMAIL_LOG_NOT_FOUND, details={"log_id": log_id})
    return EmailLogResponse(
        id=str(log.id),
        shipment_id=str(log.shipment_id) if log.shipment_id else None,
        email_type=log.email_type,
        recipient=log.recipient,
        subject=log.subject,
        html_content=log.html_content,
        sent_at=log.sent_at,
    )
