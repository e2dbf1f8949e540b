"""
模块职能：
- 把环境变量收拢成一个 Settings（pydantic），启动时构建一次，挂到 app.state.settings。
- 业务代码通过参数拿配置（例如 force_strong_password 传给校验规则构造函数），
  不在深处直接读 os.getenv。

环境变量：
DATABASE_URL / SECRET_KEY / ACCESS_TOKEN_EXPIRE_MINUTES / PASSWORD_RESET_TOKEN_EXPIRE /
FORCE_STRONG_PASSWORD / REGISTRATION_NEEDS_ACTIVATION /
SUPPORT_EMAIL / APP_BASE_URL
"""
import os

from fastapi import Request
from pydantic import BaseModel

from portal.core.validation import AccountRules, build_rules


def _get_bool(key: str, default: bool) -> bool:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def _get_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


class Settings(BaseModel):
    app_name: str = "Account Portal"
    secret_key: str = "dev-secret"
    access_token_expire_minutes: int = 60
    # 密码重置 token 有效期（秒）
    password_reset_token_expire: int = 3600
    # 强密码开关：true → strength(normal)，false → 最少 6 位
    force_strong_password: bool = False
    # 注册后是否需要邮件激活
    registration_needs_activation: bool = True
    support_email: str = "support@example.com"
    app_base_url: str = "http://localhost:8000"


def load_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "Account Portal"),
        secret_key=os.getenv("SECRET_KEY") or "dev-secret",
        access_token_expire_minutes=_get_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60),
        password_reset_token_expire=_get_int("PASSWORD_RESET_TOKEN_EXPIRE", 3600),
        force_strong_password=_get_bool("FORCE_STRONG_PASSWORD", False),
        registration_needs_activation=_get_bool("REGISTRATION_NEEDS_ACTIVATION", True),
        support_email=os.getenv("SUPPORT_EMAIL", "support@example.com"),
        app_base_url=os.getenv("APP_BASE_URL", "http://localhost:8000").rstrip("/"),
    )


def get_settings(request: Request) -> Settings:
    """FastAPI 依赖：取启动时构建的 Settings；lifespan 未触发时现场构建。"""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = load_settings()
        request.app.state.settings = settings
    return settings


def get_rules(request: Request) -> AccountRules:
    """FastAPI 依赖：启动时按 force_strong_password 构建好的校验规则。"""
    rules = getattr(request.app.state, "rules", None)
    if rules is None:
        rules = build_rules(get_settings(request).force_strong_password)
        request.app.state.rules = rules
    return rules
