# portal/api/auth.py
"""
账户自助接口（JSON）：
- POST /signup                    注册（默认需要激活）
- POST /activate                  用激活 token 激活
- POST /login                     颁发 JWT（HS256）
- POST /password-reset/request    申请重置密码（无论邮箱是否存在，返回相同提示）
- POST /password-reset/confirm    用重置 token 设置新密码
- GET  /me                        当前账户
- PUT  /account                   修改本人用户名/邮箱/密码

错误：
- 字段校验失败 → 422 {"detail": {"errors": {字段: [消息]}}}
- token 无效/过期/不存在 → 400 "Wrong or expired token."
- 登录失败 → 401

日志事件：api_signup / api_activate / api_login_attempt / api_login_failed / api_login_success /
api_password_reset_request / api_password_reset_confirm / api_account_update
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from portal.api.deps.auth import get_current_user
from portal.core.config import Settings, get_rules, get_settings
from portal.core.models import User
from portal.core.validation import AccountRules, AccountValidationError
from portal.infra.db import get_db
from portal.infra.logger import emit
from portal.services import account_flows as flows
from portal.services import accounts as repo
from portal.services.mailer import Mailer, get_mailer

# 前缀由主程序统一挂载为 /api
router = APIRouter(tags=["auth"])

WRONG_TOKEN = "Wrong or expired token."
RESET_REQUESTED = "If the email belongs to an active account, a password reset link has been sent."


def invalid(e: AccountValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"errors": e.errors})


class AccountOut(BaseModel):
    id: int
    username: str
    email: str
    status: int
    status_name: str
    role: Optional[str] = None
    created_at: int
    updated_at: int

    @classmethod
    def build(cls, user: User, role: Optional[str]) -> "AccountOut":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            status=user.status,
            status_name=user.status_name,
            role=role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class SignupIn(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class TokenIn(BaseModel):
    token: Optional[str] = None


class LoginIn(BaseModel):
    username: str
    password: str


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ResetRequestIn(BaseModel):
    email: Optional[str] = None


class ResetConfirmIn(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class AccountUpdateIn(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    new_password: Optional[str] = None


@router.post("/signup", response_model=AccountOut, status_code=201)
def signup(
    body: SignupIn,
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    try:
        user = flows.signup(db, rules, settings, mailer, body.username, body.email, body.password)
    except AccountValidationError as e:
        emit("api_signup", ok=False, fields=sorted(e.errors))
        raise invalid(e)
    emit("api_signup", ok=True, account_id=user.id)
    return AccountOut.build(user, repo.role_name(db, user.id))


@router.post("/activate", response_model=AccountOut)
def activate(body: TokenIn, db: Session = Depends(get_db)):
    user = flows.activate(db, body.token)
    if user is None:
        emit("api_activate", ok=False)
        raise HTTPException(status_code=400, detail=WRONG_TOKEN)
    emit("api_activate", ok=True, account_id=user.id)
    return AccountOut.build(user, repo.role_name(db, user.id))


@router.post("/login", response_model=LoginOut)
def login(
    body: LoginIn,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # 不记录明文密码
    emit(
        "api_login_attempt",
        username=body.username,
        ip=str(request.client.host) if request.client else None,
        ua=request.headers.get("user-agent"),
    )
    try:
        user = flows.authenticate(db, body.username, body.password)
    except flows.AuthError as e:
        emit("api_login_failed", username=body.username, reason=e.reason)
        raise HTTPException(status_code=401, detail=e.message, headers={"WWW-Authenticate": "Bearer"})

    token = flows.issue_access_token(db, settings, user)
    # 不记录 token
    emit("api_login_success", account_id=user.id, username=user.username)
    return LoginOut(access_token=token)


@router.post("/password-reset/request")
def password_reset_request(
    body: ResetRequestIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    try:
        sent = flows.request_password_reset(db, settings, mailer, body.email)
    except AccountValidationError as e:
        raise invalid(e)
    emit("api_password_reset_request", sent=sent)
    return {"ok": True, "message": RESET_REQUESTED}


@router.post("/password-reset/confirm")
def password_reset_confirm(
    body: ResetConfirmIn,
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
    settings: Settings = Depends(get_settings),
):
    try:
        user = flows.reset_password(db, rules, settings, body.token, body.password)
    except AccountValidationError as e:
        raise invalid(e)
    if user is None:
        emit("api_password_reset_confirm", ok=False)
        raise HTTPException(status_code=400, detail=WRONG_TOKEN)
    emit("api_password_reset_confirm", ok=True, account_id=user.id)
    return {"ok": True, "message": "New password was saved."}


@router.get("/me", response_model=AccountOut)
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return AccountOut.build(user, repo.role_name(db, user.id))


@router.put("/account", response_model=AccountOut)
def update_account(
    body: AccountUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
):
    try:
        flows.update_account(db, rules, user, body.username, body.email, body.new_password)
    except AccountValidationError as e:
        raise invalid(e)
    emit("api_account_update", account_id=user.id)
    return AccountOut.build(user, repo.role_name(db, user.id))
