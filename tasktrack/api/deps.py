import json
from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, selectinload

from tasktrack.db.models import User
from tasktrack.core.security import decode_token
from tasktrack.core.rbac import (
    AccessControlService,
    ContextResolver,
    PermissionGuard,
    RequestContext,
    TaskOwnershipGuard,
    Unauthenticated,
    get_requirement,
)

# Tokens are issued by the external identity service; this API only verifies them
bearer_scheme = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Generator:
    """Database session dependency."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[User]:
    """Resolve the bearer token to a user with role assignments preloaded.
    
    Returns None for anonymous requests; guards decide whether that is fatal.
    The user and its id are also left on ``request.state``; the audit middleware
    reads the id, which stays valid after the request session closes.
    """
    user = None
    if credentials:
        user_id = decode_token(credentials.credentials)
        if user_id:
            user = (
                db.query(User)
                .options(selectinload(User.roles))
                .filter(User.id == user_id)
                .first()
            )
    request.state.user = user
    request.state.user_id = user.id if user is not None else None
    return user


def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise Unauthenticated()
    return current_user


def get_acl(db: Session = Depends(get_db)) -> AccessControlService:
    return AccessControlService(db)


async def _json_body(request: Request) -> dict:
    if request.method not in ("POST", "PUT", "PATCH"):
        return {}
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def enforce(endpoint_id: str, *, ownership: bool = False):
    """
    Dependency factory running the enforcement pipeline for an endpoint.
    
    PermissionGuard always runs first, then TaskOwnershipGuard when
    ``ownership`` is set, both over the same RequestContext so the task
    cached during department resolution is reused.
    
    Usage:
        @router.put("/{task_id}")
        async def update_task(ctx: RequestContext = Depends(enforce("tasks.update", ownership=True))):
            task = ctx.resolved_task
            ...
    """
    requirement = get_requirement(endpoint_id)

    async def dependency(
        request: Request,
        db: Session = Depends(get_db),
        current_user: Optional[User] = Depends(get_current_user),
    ) -> RequestContext:
        ctx = RequestContext(
            user=current_user,
            body=await _json_body(request),
            path_params=dict(request.path_params),
            query=dict(request.query_params),
        )
        acl = AccessControlService(db)
        resolver = ContextResolver(db)

        # Published before the guards run so denials can be attributed too
        request.state.access_context = ctx

        PermissionGuard(acl, resolver).check(ctx, requirement)
        if ownership:
            TaskOwnershipGuard(acl, resolver).check(ctx)

        return ctx

    return dependency
