from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AuditLogEntry(BaseModel):
    """One admin action on a member account"""

    model_config = ConfigDict(frozen=True)

    audit_id: str
    admin_id: str
    action: str
    target_id: str
    details: str = ""
    created_at: datetime
