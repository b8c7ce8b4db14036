from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID

from .common import CamelModel


class AuditLogResponse(CamelModel):
    id: UUID
    action: str
    resource: str
    resource_id: str
    user_id: Optional[UUID]
    ip_address: str
    details: Dict[str, Any]
    timestamp: datetime
