# portal/web/views.py
"""
服务端渲染页面（Jinja2）：
- /site/signup                注册表单，字段 SignupForm[username|email|password]，按钮 signup-button
- /site/login                 登录表单，成功后写 access_token cookie
- /site/logout                清 cookie
- /site/activate-account      点邮件里的激活链接
- /site/request-password-reset  申请重置
- /site/reset-password        设置新密码
- /user/update-account        修改本人账户（newPassword 留空表示不改）

校验失败时重新渲染表单（200），消息挂在对应字段下；与 JSON 接口共用 services 层。
"""
from pathlib import Path
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session
from starlette.templating import Jinja2Templates

from portal.api.deps.auth import COOKIE_NAME, get_optional_user
from portal.core.config import Settings, get_rules, get_settings
from portal.core.models import User
from portal.core.validation import AccountRules, AccountValidationError
from portal.infra.db import get_db
from portal.infra.logger import emit
from portal.services import account_flows as flows
from portal.services.mailer import Mailer, get_mailer

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(include_in_schema=False)


async def _form_fields(request: Request, form_name: str) -> Dict[str, str]:
    """取出 Form[field] 形式的字段：{"username": "...", ...}"""
    form = await request.form()
    prefix = f"{form_name}["
    out = {}
    for key, value in form.multi_items():
        if key.startswith(prefix) and key.endswith("]") and isinstance(value, str):
            out[key[len(prefix):-1]] = value
    return out


def _render(request: Request, name: str, context: dict, status_code: int = 200) -> HTMLResponse:
    ctx = {"app_name": request.app.title, "current_user": None, **context}
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)


def _message(request: Request, title: str, message: str, ok: bool, status_code: int = 200) -> HTMLResponse:
    return _render(request, "site/message.html",
                   {"title": title, "message": message, "ok": ok}, status_code=status_code)


# ---------------------------------------------------------------------------
# 注册 / 激活
# ---------------------------------------------------------------------------

@router.get("/site/signup", response_class=HTMLResponse)
def signup_page(request: Request):
    return _render(request, "site/signup.html", {"title": "Signup", "model": {}, "errors": {}})


@router.post("/site/signup", response_class=HTMLResponse)
async def signup_submit(
    request: Request,
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    data = await _form_fields(request, "SignupForm")
    try:
        user = flows.signup(db, rules, settings, mailer,
                            data.get("username"), data.get("email"), data.get("password"))
    except AccountValidationError as e:
        model = {k: v for k, v in data.items() if k != "password"}
        return _render(request, "site/signup.html", {"title": "Signup", "model": model, "errors": e.errors})

    emit("web_signup", account_id=user.id)
    if settings.registration_needs_activation:
        text = (f"Hello {user.username}. To be able to log in, you need to confirm your registration. "
                f"Please check your email, we have sent you a message.")
    else:
        text = f"Hello {user.username}. Your account has been created, you can log in now."
    return _message(request, "Signup", text, ok=True)


@router.get("/site/activate-account", response_class=HTMLResponse)
def activate_account(request: Request, token: Optional[str] = None, db: Session = Depends(get_db)):
    user = flows.activate(db, token)
    if user is None:
        return _message(request, "Account activation", "We couldn't activate your account. "
                        "The link is wrong or has already been used.", ok=False, status_code=400)
    return _message(request, "Account activation",
                    f"Success! You can now log in. Thank you {user.username} for joining us!", ok=True)


# ---------------------------------------------------------------------------
# 登录 / 退出
# ---------------------------------------------------------------------------

@router.get("/site/login", response_class=HTMLResponse)
def login_page(request: Request):
    return _render(request, "site/login.html", {"title": "Login", "model": {}, "errors": {}})


@router.post("/site/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    data = await _form_fields(request, "LoginForm")
    try:
        user = flows.authenticate(db, data.get("username"), data.get("password"))
    except flows.AuthError as e:
        model = {"username": data.get("username", "")}
        return _render(request, "site/login.html",
                       {"title": "Login", "model": model, "errors": {"password": [e.message]}})

    token = flows.issue_access_token(db, settings, user)
    resp = RedirectResponse(url="/user/update-account", status_code=303)
    resp.set_cookie(COOKIE_NAME, token, httponly=True, samesite="lax",
                    max_age=settings.access_token_expire_minutes * 60)
    emit("web_login", account_id=user.id)
    return resp


@router.get("/site/logout")
def logout():
    resp = RedirectResponse(url="/site/login", status_code=303)
    resp.delete_cookie(COOKIE_NAME)
    return resp


# ---------------------------------------------------------------------------
# 重置密码
# ---------------------------------------------------------------------------

@router.get("/site/request-password-reset", response_class=HTMLResponse)
def request_reset_page(request: Request):
    return _render(request, "site/request_password_reset.html",
                   {"title": "Request password reset", "model": {}, "errors": {}})


@router.post("/site/request-password-reset", response_class=HTMLResponse)
async def request_reset_submit(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    data = await _form_fields(request, "PasswordResetRequestForm")
    try:
        flows.request_password_reset(db, settings, mailer, data.get("email"))
    except AccountValidationError as e:
        return _render(request, "site/request_password_reset.html",
                       {"title": "Request password reset", "model": data, "errors": e.errors})
    return _message(request, "Request password reset",
                    "Check your email for further instructions.", ok=True)


@router.get("/site/reset-password", response_class=HTMLResponse)
def reset_page(
    request: Request,
    token: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if flows.find_reset_target(db, settings, token) is None:
        return _message(request, "Reset password", "Wrong or expired password reset token.",
                        ok=False, status_code=400)
    return _render(request, "site/reset_password.html",
                   {"title": "Reset password", "token": token, "errors": {}})


@router.post("/site/reset-password", response_class=HTMLResponse)
async def reset_submit(
    request: Request,
    token: Optional[str] = None,
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
    settings: Settings = Depends(get_settings),
):
    data = await _form_fields(request, "ResetPasswordForm")
    try:
        user = flows.reset_password(db, rules, settings, token, data.get("password"))
    except AccountValidationError as e:
        return _render(request, "site/reset_password.html",
                       {"title": "Reset password", "token": token, "errors": e.errors})
    if user is None:
        return _message(request, "Reset password", "Wrong or expired password reset token.",
                        ok=False, status_code=400)
    return _message(request, "Reset password", "New password was saved.", ok=True)


# ---------------------------------------------------------------------------
# 修改本人账户
# ---------------------------------------------------------------------------

@router.get("/user/update-account", response_class=HTMLResponse)
def update_account_page(request: Request, user: Optional[User] = Depends(get_optional_user)):
    if user is None:
        return RedirectResponse(url="/site/login", status_code=303)
    model = {"username": user.username, "email": user.email}
    return _render(request, "user/update.html",
                   {"title": "Update account", "model": model, "errors": {}, "current_user": user})


@router.post("/user/update-account", response_class=HTMLResponse)
async def update_account_submit(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
):
    if user is None:
        return RedirectResponse(url="/site/login", status_code=303)
    data = await _form_fields(request, "User")
    try:
        flows.update_account(db, rules, user, data.get("username"), data.get("email"),
                             data.get("newPassword") or None)
    except AccountValidationError as e:
        model = {"username": data.get("username", ""), "email": data.get("email", "")}
        # 模板里密码字段叫 newPassword
        errors = dict(e.errors)
        if "password" in errors:
            errors["newPassword"] = errors.pop("password")
        return _render(request, "user/update.html",
                       {"title": "Update account", "model": model, "errors": errors, "current_user": user})
    model = {"username": user.username, "email": user.email}
    return _render(request, "user/update.html",
                   {"title": "Update account", "model": model, "errors": {}, "current_user": user,
                    "flash": "Your account has been updated."})
