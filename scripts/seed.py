""""根据 .env 或默认值创建/更新 theCreator 账户（ACTIVE，口令 bcrypt 哈希）。

可作为脚本执行，也可被测试直接导入调用（提供 run() 函数）"""
# scripts/seed.py
import os
import sys

# 确保脚本在控制台有输出；不影响主服务的日志设置
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("PYTHONUNBUFFERED", "1")

from sqlalchemy.orm import Session  # noqa: E402
from portal.infra.db import SessionLocal  # noqa: E402
from portal.infra.logger import emit  # noqa: E402
from portal.core import rbac  # noqa: E402
from portal.core.models import User  # noqa: E402
from portal.core.security import generate_auth_key, hash_password  # noqa: E402
from portal.core.status import AccountStatus  # noqa: E402
from portal.services import accounts as repo  # noqa: E402


def _get_env(k: str, default: str) -> str:
    v = os.getenv(k)
    return v if v is not None and v != "" else default


def upsert_account(db: Session, username: str, email: str, password: str, role: str) -> User:
    u = repo.find_by_username(db, username)
    if u:
        action = "updated"
        u.email = email
        if password:
            u.password_hash = hash_password(password)
        u.status = AccountStatus.ACTIVE
    else:
        action = "created"
        u = User(username=username, email=email, password_hash=hash_password(password),
                 auth_key=generate_auth_key(), status=AccountStatus.ACTIVE)
    repo.save(db, u, role=role)

    emit("seed_account_upsert", username=username, role=role, action=action)
    print(f"[seed] {action} account: {username} ({role})", flush=True)
    return u


def run():
    emit("seed_begin", database_url=os.getenv("DATABASE_URL"))
    print("[seed] seeding accounts ...", flush=True)

    with SessionLocal() as db:
        upsert_account(
            db,
            _get_env("ADMIN_USERNAME", "admin"),
            _get_env("ADMIN_EMAIL", "admin@example.com"),
            _get_env("ADMIN_PASSWORD", "admin123"),
            rbac.THE_CREATOR,
        )

    emit("seed_done", status="ok")
    print("[seed] done.", flush=True)


if __name__ == "__main__":
    try:
        run()
        sys.exit(0)
    except Exception as e:
        emit("seed_error", error=str(e))
        print(f"[seed] ERROR: {e}", file=sys.stderr, flush=True)
        sys.exit(1)
