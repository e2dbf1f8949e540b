"""
模块职能：
- 账户流程：注册 / 激活 / 申请重置密码 / 重置密码 / 登录校验 / 修改本人账户。
- 管理员：创建账户（可指定状态与角色）、修改状态（软删除 = 置 DELETED，不物理删除）。

错误约定：
- 字段级失败抛 AccountValidationError（由 API 转 422、页面重渲染表单）
- token 无效/过期/不存在一律返回 None，不区分原因
- 登录失败抛 AuthError(reason)，reason ∈ {bad_credentials, inactive}

日志：
- account_signup / account_activate / account_activate_miss
- password_reset_request / password_reset_request_miss / password_reset_done / password_reset_miss
- auth_ok / auth_failed / account_update / account_status_change / mail_failed
"""
from typing import Optional

from sqlalchemy.orm import Session

from portal.core import rbac
from portal.core.config import Settings
from portal.core.models import User
from portal.core.security import create_access_token, generate_auth_key, hash_password, verify_password
from portal.core.status import AccountStatus, can_transit, is_known
from portal.core.tokens import is_token_valid
from portal.core.validation import (
    SCENARIO_CREATE,
    SCENARIO_UPDATE,
    AccountForm,
    AccountRules,
    AccountValidationError,
    RuleContext,
    validate,
    validate_new_password,
)
from portal.infra.logger import emit, emit_error
from portal.services import accounts as repo
from portal.services.mailer import Mailer, activation_message, password_reset_message


class AuthError(ValueError):
    BAD_CREDENTIALS = "bad_credentials"
    INACTIVE = "inactive"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    @property
    def message(self) -> str:
        if self.reason == self.INACTIVE:
            return "You have to activate your account first."
        return "Incorrect username or password."


def _send(mailer: Mailer, message, account_id: int, kind: str) -> bool:
    try:
        ok = mailer.send(message)
    except Exception as e:
        emit_error("mail_failed", account_id=account_id, kind=kind, error=repr(e))
        return False
    if not ok:
        emit_error("mail_failed", account_id=account_id, kind=kind, error="rejected")
    return ok


# ---------------------------------------------------------------------------
# 注册 / 激活
# ---------------------------------------------------------------------------

def signup(db: Session, rules: AccountRules, settings: Settings, mailer: Mailer,
           username: Optional[str], email: Optional[str], password: Optional[str],
           now: Optional[int] = None) -> User:
    form = validate(
        AccountForm(username=username, email=email, password=password, scenario=SCENARIO_CREATE),
        rules, RuleContext(db=db),
    )

    user = User(
        username=form.username,
        email=form.email,
        password_hash=hash_password(form.password),
        auth_key=generate_auth_key(),
    )
    if settings.registration_needs_activation:
        user.status = AccountStatus.INACTIVE
        user.generate_account_activation_token(now)
    else:
        user.status = AccountStatus.ACTIVE

    repo.save(db, user, role=rbac.DEFAULT_ROLE)
    emit("account_signup", account_id=user.id, username=user.username,
         needs_activation=settings.registration_needs_activation)

    if settings.registration_needs_activation:
        _send(mailer, activation_message(settings.app_base_url, settings.app_name, user.email,
                                         user.username, user.account_activation_token),
              user.id, "activation")
    return user


def activate(db: Session, token: Optional[str]) -> Optional[User]:
    user = repo.find_by_account_activation_token(db, token)
    if user is None:
        emit("account_activate_miss")
        return None
    user.status = AccountStatus.ACTIVE
    user.remove_account_activation_token()
    repo.save(db, user)
    emit("account_activate", account_id=user.id)
    return user


# ---------------------------------------------------------------------------
# 重置密码
# ---------------------------------------------------------------------------

def request_password_reset(db: Session, settings: Settings, mailer: Mailer,
                           email: Optional[str], now: Optional[int] = None) -> bool:
    """
    给 ACTIVE 账户发重置链接；仍在有效期内的旧 token 直接复用。
    返回是否真的发了信，但调用方对外应给出同样的提示。
    """
    email = (email or "").strip()
    if not email:
        raise AccountValidationError({"email": ["Email cannot be blank."]})

    user = repo.find_by_email(db, email)
    if user is None or user.status != AccountStatus.ACTIVE:
        emit("password_reset_request_miss")
        return False

    if not is_token_valid(user.password_reset_token, settings.password_reset_token_expire, now):
        user.generate_password_reset_token(now)
        repo.save(db, user)

    emit("password_reset_request", account_id=user.id)
    return _send(mailer, password_reset_message(settings.app_base_url, settings.app_name, user.email,
                                                user.username, user.password_reset_token),
                 user.id, "password_reset")


def find_reset_target(db: Session, settings: Settings, token: Optional[str],
                      now: Optional[int] = None) -> Optional[User]:
    ttl = settings.password_reset_token_expire
    user = repo.find_by_password_reset_token(db, token, ttl, now)
    if user is None:
        repo.clear_expired_password_reset_token(db, token, ttl, now)
    return user


def reset_password(db: Session, rules: AccountRules, settings: Settings,
                   token: Optional[str], password: Optional[str],
                   now: Optional[int] = None) -> Optional[User]:
    user = find_reset_target(db, settings, token, now)
    if user is None:
        emit("password_reset_miss")
        return None

    validate_new_password(password, rules.password, user.username, user.email)

    user.password_hash = hash_password(password)
    user.remove_password_reset_token()
    # 轮换 auth_key，之前签发的 access token 失效
    user.auth_key = generate_auth_key()
    repo.save(db, user)
    emit("password_reset_done", account_id=user.id)
    return user


# ---------------------------------------------------------------------------
# 登录
# ---------------------------------------------------------------------------

def authenticate(db: Session, username: Optional[str], password: Optional[str]) -> User:
    user = repo.find_by_username(db, (username or "").strip())
    if user is None or not verify_password(password or "", user.password_hash):
        emit("auth_failed", username=username, reason=AuthError.BAD_CREDENTIALS)
        raise AuthError(AuthError.BAD_CREDENTIALS)
    if user.status == AccountStatus.INACTIVE:
        emit("auth_failed", username=username, reason=AuthError.INACTIVE)
        raise AuthError(AuthError.INACTIVE)
    if user.status != AccountStatus.ACTIVE:
        # 已删除账户：与口令错误同样处理
        emit("auth_failed", username=username, reason="deleted")
        raise AuthError(AuthError.BAD_CREDENTIALS)
    emit("auth_ok", account_id=user.id, username=user.username)
    return user


def issue_access_token(db: Session, settings: Settings, user: User) -> str:
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": repo.role_name(db, user.id) or "",
        "ak": user.get_auth_key(),
    }
    return create_access_token(payload, settings.secret_key, settings.access_token_expire_minutes)


# ---------------------------------------------------------------------------
# 修改本人账户
# ---------------------------------------------------------------------------

def update_account(db: Session, rules: AccountRules, user: User,
                   username: Optional[str], email: Optional[str],
                   new_password: Optional[str] = None) -> User:
    """new_password 为空表示不改密码。"""
    form = validate(
        AccountForm(
            username=username, email=email,
            password=None if new_password in (None, "") else new_password,
            scenario=SCENARIO_UPDATE, account_id=user.id,
        ),
        rules, RuleContext(db=db),
    )
    user.username = form.username
    user.email = form.email
    changed_password = form.password is not None
    if changed_password:
        user.password_hash = hash_password(form.password)
    repo.save(db, user)
    emit("account_update", account_id=user.id, password_changed=changed_password)
    return user


# ---------------------------------------------------------------------------
# 管理员
# ---------------------------------------------------------------------------

def create_account(db: Session, rules: AccountRules, username: Optional[str], email: Optional[str],
                   password: Optional[str], status: Optional[int], role: str) -> User:
    form = AccountForm(username=username, email=email, password=password, status=status,
                       scenario=SCENARIO_CREATE, status_required=True)
    errors = {}
    if not rbac.is_known_role(role):
        errors["item_name"] = ["Role is invalid."]
    try:
        validate(form, rules, RuleContext(db=db))
    except AccountValidationError as e:
        errors = {**e.errors, **errors}
    if errors:
        raise AccountValidationError(errors)

    user = User(
        username=form.username,
        email=form.email,
        password_hash=hash_password(form.password),
        auth_key=generate_auth_key(),
        status=int(form.status),
    )
    repo.save(db, user, role=role)
    emit("account_admin_create", account_id=user.id, status=user.status, role=role)
    return user


def set_status(db: Session, user: User, status: int) -> User:
    if not is_known(status):
        raise AccountValidationError({"status": ["Status is invalid."]})
    if user.status == status:
        return user
    if not can_transit(user.status, status):
        raise AccountValidationError(
            {"status": [f"Cannot change status from {user.status_name} to {AccountStatus(status).name.title()}."]}
        )
    src = user.status
    user.status = status
    if status == AccountStatus.ACTIVE:
        user.remove_account_activation_token()
    repo.save(db, user)
    emit("account_status_change", account_id=user.id, src=src, dst=status)
    return user
