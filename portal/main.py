"""
应用入口：
- 加载 .env（先 .env.example 作默认，再用 .env 覆盖）
- lifespan 启动阶段：配置日志 → 构建 Settings / 校验规则 / 发信器 → 初始化数据库
- 装载请求日志中间件、JSON 路由（/api）、页面路由（/site、/user）
- 提供 /health
"""
from pathlib import Path
from dotenv import load_dotenv

# 1) 先加载 .env，务必在导入 logger 之前
ROOT = Path(__file__).resolve().parents[1]
ENV = ROOT / ".env"
ENV_EXAMPLE = ROOT / ".env.example"
if ENV_EXAMPLE.exists():
    load_dotenv(ENV_EXAMPLE, override=False)
if ENV.exists():
    load_dotenv(ENV, override=True)

# 2) 正常导入
from contextlib import asynccontextmanager  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.responses import RedirectResponse  # noqa: E402
from portal.middleware.logging import RequestLoggingMiddleware  # noqa: E402
from portal.infra.logger import (  # noqa: E402
    configure_logging, emit,
    LOG_TO_FILE, LOG_DIR, LOG_FILE, LOG_ROTATE_WHEN, LOG_BACKUP_COUNT,
)
from portal.infra.db import init_db  # noqa: E402
from portal.core.config import load_settings  # noqa: E402
from portal.core.validation import build_rules  # noqa: E402
from portal.services.mailer import LogMailer  # noqa: E402
from portal.api import auth as auth_api  # noqa: E402
from portal.api import users as users_api  # noqa: E402
from portal.web import views as web_views  # noqa: E402


# 3) lifespan：startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    emit(
        "logger_config",
        to_file=LOG_TO_FILE, dir=LOG_DIR, file=LOG_FILE,
        when=LOG_ROTATE_WHEN, backup=LOG_BACKUP_COUNT,
    )
    settings = load_settings()
    app.state.settings = settings
    # 密码策略在这里一次性确定
    app.state.rules = build_rules(settings.force_strong_password)
    if getattr(app.state, "mailer", None) is None:
        app.state.mailer = LogMailer(sender=settings.support_email)
    emit("settings_loaded", force_strong_password=settings.force_strong_password,
         registration_needs_activation=settings.registration_needs_activation,
         password_reset_token_expire=settings.password_reset_token_expire)
    init_db()
    emit("db_init_done")
    yield
    emit("app_shutdown")


# 4) 创建应用并装配
app = FastAPI(title="Account Portal", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/", include_in_schema=False)
def index():
    return RedirectResponse(url="/site/login", status_code=303)


app.include_router(auth_api.router, prefix="/api", tags=["auth"])
app.include_router(users_api.router, prefix="/api", tags=["users"])
app.include_router(web_views.router)
