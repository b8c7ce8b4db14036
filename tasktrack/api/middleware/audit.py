"""Audit logging middleware for FastAPI.

Records one audit entry per successful mutating API request, and one
``access_denied`` entry when an authenticated user is refused (403):
- Action (HTTP method mapped to create/update/delete)
- Resource type and ID (from path and response)
- Department attribution (body, route, or affected entity)
- Request body snapshot with credentials stripped
- Client IP address

Reads, auth routes and audit-log routes are never recorded.
"""

import json
import logging
from typing import Callable, Optional, Dict, Any

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from tasktrack.core.audit import AuditService, ACCESS_DENIED
from tasktrack.core.config import Settings, get_settings
from tasktrack.core.rbac.context import DEPARTMENT_FIELD, DEPARTMENT_PARAM, TARGET_PARAM

logger = logging.getLogger(__name__)


# Map HTTP methods to action names; anything else is a read and is skipped
METHOD_TO_ACTION = {
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}

API_PREFIX = "/api"

# Sensitive fields stripped from request body snapshots
SENSITIVE_FIELDS = {
    "password",
    "password_hash",
    "token",
    "access_token",
    "refresh_token",
    "api_key",
    "secret",
    "client_secret",
}

# Path params that can name the affected entity, most specific first
RESOURCE_ID_PARAMS = (TARGET_PARAM, "user_id", DEPARTMENT_PARAM)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    # Check X-Forwarded-For header (set by reverse proxies)
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()
    
    # Check X-Real-IP header
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    
    # Fall back to direct client
    if request.client:
        return request.client.host
    
    return "unknown"


def derive_resource(path: str) -> str:
    """
    Derive the resource name from a request path.
    
    ``/api/tasks/123`` -> ``task``; ``/api/departments/1/members`` -> ``member``.
    """
    parts = [p for p in path.split("?")[0].strip("/").split("/") if p]
    
    # Skip api prefix
    if parts and parts[0] == API_PREFIX.strip("/"):
        parts = parts[1:]
    
    if len(parts) >= 3 and parts[0] == "departments" and parts[2] == "members":
        return "member"
    
    first = parts[0] if parts else "unknown"
    return first[:-1] if first.endswith("s") else first


def strip_sensitive(data: Any) -> Any:
    """Remove credential-like fields from data."""
    if isinstance(data, dict):
        return {
            k: strip_sensitive(v)
            for k, v in data.items()
            if k.lower() not in SENSITIVE_FIELDS
        }
    elif isinstance(data, list):
        return [strip_sensitive(item) for item in data]
    return data


def derive_resource_id(
    action: str,
    path_params: Dict[str, Any],
    response_body: Any,
) -> str:
    """Created entity's id for creates, otherwise the route's target id."""
    if action == "create" and isinstance(response_body, dict) and response_body.get("id"):
        return str(response_body["id"])
    for param in RESOURCE_ID_PARAMS:
        if path_params.get(param):
            return str(path_params[param])
    return ""


def derive_department_id(
    resource: str,
    body: Dict[str, Any],
    path_params: Dict[str, Any],
    response_body: Any,
    task_department_id: Any = None,
) -> Optional[str]:
    """
    Determine which department an audited request concerns, in order:
    1. ``departmentId`` in the request body
    2. the parent id of a membership route
    3. ``department_id`` in the path
    4. ``departmentId`` on the affected entity in the response
    5. the department of the task the guards resolved (deletes have no body)
    6. for departments themselves, the department's own id
    """
    if body.get(DEPARTMENT_FIELD):
        return str(body[DEPARTMENT_FIELD])
    
    if resource == "member" and path_params.get(DEPARTMENT_PARAM):
        return str(path_params[DEPARTMENT_PARAM])
    
    if path_params.get(DEPARTMENT_PARAM):
        return str(path_params[DEPARTMENT_PARAM])
    
    if isinstance(response_body, dict) and response_body.get(DEPARTMENT_FIELD):
        return str(response_body[DEPARTMENT_FIELD])
    
    if task_department_id:
        return str(task_department_id)
    
    if resource == "department" and isinstance(response_body, dict) and response_body.get("id"):
        return str(response_body["id"])
    
    return None


def _parse_json(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


class AuditMiddleware(BaseHTTPMiddleware):
    """
    Middleware that writes audit entries for mutating API requests.
    
    Recording goes through ``AuditService.record``, which never raises,
    so a broken audit store cannot fail or alter the response.
    """
    
    def __init__(self, app, settings: Optional[Settings] = None):
        super().__init__(app)
        self.settings = settings or get_settings()
        self.skip_prefixes = tuple(self.settings.audit_skip_prefixes_list)
    
    def should_audit(self, request: Request) -> bool:
        if not self.settings.audit_enabled:
            return False
        if request.method not in METHOD_TO_ACTION:
            return False
        path = request.url.path
        if not path.startswith(API_PREFIX):
            return False
        return not path.startswith(self.skip_prefixes)
    
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.should_audit(request):
            return await call_next(request)
        
        action = METHOD_TO_ACTION[request.method]
        resource = derive_resource(request.url.path)
        client_ip = get_client_ip(request)
        
        request_body = _parse_json(await request.body())
        if not isinstance(request_body, dict):
            request_body = {}
        
        response = await call_next(request)
        
        # Path params, user and access context are filled in by routing and auth downstream
        path_params = dict(request.path_params)
        user_id = getattr(request.state, "user_id", None)
        access_context = getattr(request.state, "access_context", None)
        task_department_id = getattr(access_context, "task_department_id", None)
        
        if 200 <= response.status_code < 300:
            response, response_body = await self._capture_body(response)
            
            details: Dict[str, Any] = {}
            department_id = derive_department_id(
                resource,
                request_body,
                path_params,
                response_body,
                task_department_id=task_department_id,
            )
            if department_id:
                details["departmentId"] = department_id
            safe_body = strip_sensitive(request_body)
            if safe_body:
                details["body"] = safe_body
            
            await self._record(
                request,
                action=action,
                resource=resource,
                resource_id=derive_resource_id(action, path_params, response_body),
                user_id=user_id,
                ip_address=client_ip,
                details=details,
            )
        elif response.status_code == 403 and user_id is not None:
            department_id = (
                request_body.get(DEPARTMENT_FIELD)
                or path_params.get(DEPARTMENT_PARAM)
                or task_department_id
            )
            details = {"originalAction": action}
            if department_id:
                details["departmentId"] = str(department_id)
            
            await self._record(
                request,
                action=ACCESS_DENIED,
                resource=resource,
                resource_id=derive_resource_id(ACCESS_DENIED, path_params, None),
                user_id=user_id,
                ip_address=client_ip,
                details=details,
            )
        
        return response
    
    async def _capture_body(self, response: Response) -> tuple[Response, Any]:
        """Drain the streamed response so its JSON can be inspected, then rebuild it."""
        raw = b""
        async for chunk in response.body_iterator:
            raw += chunk if isinstance(chunk, bytes) else chunk.encode()
        
        rebuilt = Response(
            content=raw,
            status_code=response.status_code,
            background=response.background,
        )
        rebuilt.raw_headers = response.raw_headers
        
        content_type = response.headers.get("content-type", "")
        body = _parse_json(raw) if content_type.startswith("application/json") else None
        return rebuilt, body
    
    async def _record(self, request: Request, **entry) -> None:
        """Write one entry on a fresh session. Failures are logged, never raised."""
        def write() -> None:
            db = request.app.state.session_factory()
            try:
                AuditService(db).record(**entry)
            finally:
                db.close()
        
        try:
            await run_in_threadpool(write)
        except Exception:
            logger.exception(
                "Failed to write audit log (%s %s)", entry.get("action"), entry.get("resource")
            )
