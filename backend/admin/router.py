# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user lifecycle management and the audit trail.

Every endpoint in this router is guarded by ``require_admin``.  A request
that carries a valid JWT but belongs to a ``staff`` account will receive 403
before any business logic runs.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from admin.schemas import (
    AuditLogListResponse,
    AuditLogRow,
    ChangeRoleRequest,
    ResetPasswordRequest,
    UserListResponse,
    VerificationLinkResponse,
)
from auth.service import AuthService, get_auth_service
from core.clock import as_utc
from core.logger import get_logger
from core.security import get_client_ip, require_admin
from database import get_db
from models.audit_log import AuditLog
from models.user import ROLES, User

log = get_logger("admin")

router = APIRouter(prefix="/api", tags=["admin"])


def _get_user(user_id: int, db: Session) -> User:
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return target


# ---------------------------------------------------------------------------
# GET /api/users  – list all users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Return every user row, newest first (no password data – handled by the schema)."""
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return UserListResponse(users=users)


# ---------------------------------------------------------------------------
# GET /api/users/verification-link  – recover a pending verification link
# ---------------------------------------------------------------------------


@router.get("/users/verification-link", response_model=VerificationLinkResponse)
def verification_link(
    email: str = Query(..., description="Exact email address of the account"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Fallback for when the verification mail never arrived: returns the link
    built from the stored token so an admin can pass it on.
    """
    target = db.query(User).filter(User.email == email).first()
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not target.verification_token:
        return VerificationLinkResponse(
            email=target.email,
            username=target.username,
            message="Email already verified or no token found",
        )

    return VerificationLinkResponse(
        email=target.email,
        username=target.username,
        verification_link=auth.verification_link(target.verification_token),
        message="Send this link to the user to verify the email",
    )


# ---------------------------------------------------------------------------
# DELETE /api/users/{id}  – remove an account
# ---------------------------------------------------------------------------


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Permanently delete an account.  Guard: an admin cannot delete themselves."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete your own account",
        )

    target = _get_user(user_id, db)
    detail = f"username={target.username}, email={target.email}"

    db.delete(target)
    db.add(AuditLog(actor_id=admin.id, action="delete_user", detail=detail, request_ip=get_client_ip(request)))
    db.commit()
    log.info("Admin id=%s deleted user %s", admin.id, detail)

    return {"message": "User deleted successfully"}


# ---------------------------------------------------------------------------
# PUT /api/users/{id}/role  – promote or demote a user
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/role")
def change_role(
    user_id: int,
    body: ChangeRoleRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Change the role of an existing user.  Guards:
    * Role value must be 'admin' or 'staff'.
    * An admin cannot change their own role (prevents accidental self-lockout).
    """
    if body.role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid role. Must be 'admin' or 'staff'",
        )

    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own role",
        )

    target = _get_user(user_id, db)
    target.role = body.role
    db.add(AuditLog(
        actor_id=admin.id,
        target_user_id=user_id,
        action="change_role",
        detail=f"new_role={body.role}",
        request_ip=get_client_ip(request),
    ))
    db.commit()

    return {"message": "User role updated successfully"}


# ---------------------------------------------------------------------------
# PUT /api/users/{id}/reset-password  – admin resets another user's password
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/reset-password")
def reset_password(
    user_id: int,
    body: ResetPasswordRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Overwrite a user's password.  Any lockout is cleared at the same time."""
    target = _get_user(user_id, db)
    auth.reset_password(target, body.new_password, actor=admin)
    return {"message": "Password reset successfully"}


# ---------------------------------------------------------------------------
# PUT /api/users/{id}/unlock  – lift a lockout early
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/unlock")
def unlock_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Clear ``locked_until`` and reset the failed-attempt counter."""
    target = _get_user(user_id, db)
    auth.unlock(target, actor=admin)
    return {"message": "User unlocked"}


# ---------------------------------------------------------------------------
# PUT /api/users/{id}/verify  – manual email verification
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/verify")
def verify_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Mark the email as verified without the token (clears any pending token)."""
    target = _get_user(user_id, db)
    auth.mark_verified(target, actor=admin)
    return {"message": "User verified"}


# ---------------------------------------------------------------------------
# GET /api/audit-logs  – audit trail with optional filters
# ---------------------------------------------------------------------------


@router.get("/audit-logs", response_model=AuditLogListResponse)
def list_audit_logs(
    since: datetime | None = Query(None, description="ISO-8601 start of time window"),
    until: datetime | None = Query(None, description="ISO-8601 end of time window"),
    action: str | None = Query(None, description="Exact action name, e.g. login_failed"),
    limit: int = Query(200, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Return audit log rows newest-first.

    * ``since`` / ``until`` – ISO-8601 bounds on ``created_at``.
    * ``action`` – only rows with this action.
    * ``limit`` – max rows returned (default 200, cap 1000).
    """
    q = db.query(AuditLog)
    # created_at is stored as UTC; offsets on the bounds must be applied first.
    if since:
        q = q.filter(AuditLog.created_at >= as_utc(since))
    if until:
        q = q.filter(AuditLog.created_at <= as_utc(until))
    if action:
        q = q.filter(AuditLog.action == action)

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

    # Resolve user ids to usernames in one query
    user_ids = {r.actor_id for r in rows} | {r.target_user_id for r in rows}
    user_ids.discard(None)
    names = {}
    if user_ids:
        names = dict(db.query(User.id, User.username).filter(User.id.in_(user_ids)).all())

    return AuditLogListResponse(logs=[
        AuditLogRow(
            id=row.id,
            actor=names.get(row.actor_id),
            target=names.get(row.target_user_id),
            action=row.action,
            detail=row.detail,
            request_ip=row.request_ip,
            created_at=row.created_at,
        )
        for row in rows
    ])
