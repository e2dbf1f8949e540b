# portal/api/deps/auth.py
"""
当前登录账户解析：
- 凭证来源：Authorization: Bearer <JWT>，其次 cookie access_token（页面登录后写入）
- 负载：sub = 账户 id，ak = auth_key；ak 与库里不一致（重置过密码）视为失效
- 只有 ACTIVE 账户能通过
- require_admin：角色属于 theCreator / admin，否则 403

事件：auth_missing_credentials / auth_token_invalid / auth_token_expired / auth_key_mismatch / auth_forbidden
"""
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portal.core import rbac
from portal.core.config import Settings, get_settings
from portal.core.models import User
from portal.core.security import decode_access_token
from portal.infra.db import get_db
from portal.infra.logger import emit
from portal.services import accounts as repo

COOKIE_NAME = "access_token"
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _extract_token(request: Request, creds: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if creds and creds.credentials:
        return creds.credentials
    return request.cookies.get(COOKIE_NAME) or None


def resolve_user(token: Optional[str], db: Session, settings: Settings) -> User:
    if not token:
        emit("auth_missing_credentials")
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(token, settings.secret_key)
    except jwt.ExpiredSignatureError:
        emit("auth_token_expired")
        raise _unauthorized("Token expired")
    except jwt.PyJWTError as e:
        emit("auth_token_invalid", error=str(e))
        raise _unauthorized("Invalid token")

    try:
        account_id = int(payload.get("sub") or 0)
    except (TypeError, ValueError):
        account_id = 0
    user = repo.find_by_id(db, account_id) if account_id else None
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    if not user.validate_auth_key(payload.get("ak") or ""):
        emit("auth_key_mismatch", account_id=user.id)
        raise _unauthorized("Invalid token")
    return user


def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    return resolve_user(_extract_token(request, creds), db, settings)


def get_optional_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    token = _extract_token(request, creds)
    if not token:
        return None
    try:
        return resolve_user(token, db, settings)
    except HTTPException:
        return None


def require_admin(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    role = repo.role_name(db, user.id)
    if role not in rbac.ADMIN_ROLES:
        emit("auth_forbidden", account_id=user.id, role=role)
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action.")
    return user
