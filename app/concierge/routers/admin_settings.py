from fastapi import APIRouter, Depends, Request

from app.concierge.core.deps import require_admin
from app.concierge.db.session import get_db
from app.concierge.repos.settings import SettingsRepository
from app.concierge.routers.shipments import record_audit
from app.concierge.schemas.admin_settings import AdminEmailSettingsResponse, AdminEmailSettingsUpdate
from app.concierge.schemas.errors import STANDARD_ERROR_RESPONSES
from app.concierge.services.notifications import ADMIN_NOTIFY_EMAILS_KEY, admin_notify_emails, parse_email_list

router = APIRouter()


@router.get("/api/admin/settings/email", response_model=AdminEmailSettingsResponse)
def get_admin_emails(db=Depends(get_db), current_user=Depends(require_admin)):
    emails, source = admin_notify_emails(db)
    return AdminEmailSettingsResponse(emails=emails, source=source)


@router.put("/api/admin/settings/email", response_model=AdminEmailSettingsResponse, responses=STANDARD_ERROR_RESPONSES)
def update_admin_emails(
    request: Request,
    payload: AdminEmailSettingsUpdate,
    db=Depends(get_db),
    current_user=Depends(require_admin),
):
    emails = parse_email_list([str(email) for email in payload.emails])
    SettingsRepository(db).upsert(ADMIN_NOTIFY_EMAILS_KEY, ",".join(emails))
    record_audit(db, request, actor=current_user.username, action="settings.update", entity_type="settings",
                 entity_id=ADMIN_NOTIFY_EMAILS_KEY, metadata={"emails": emails})
    return AdminEmailSettingsResponse(emails=emails, source="settings")
