from datetime import datetime

from pydantic import BaseModel


class EmailLogResponse(BaseModel):
    id: str
    shipment_id: str | None
    email_type: str
    recipient: str
    subject: str
    html_content: str
    sent_at: datetime
