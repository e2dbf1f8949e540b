""""轻量迁移：创建 user / auth_assignment 表（若不存在），不修改既有表。

用 SQLAlchemy 的 Base.metadata.create_all()，只建缺失的表。"""

# scripts/migrate.py
import os
import sys

# 确保脚本在控制台有输出；不影响主服务的日志设置
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("PYTHONUNBUFFERED", "1")

from portal.infra.db import engine  # noqa: E402
from portal.infra.logger import emit  # noqa: E402
from portal.core.models import Base  # noqa: E402


def run():
    emit("migrate_begin", database_url=os.getenv("DATABASE_URL"))
    print("[migrate] creating tables if not exists ...", flush=True)
    Base.metadata.create_all(bind=engine)
    emit("migrate_done", tables=sorted(Base.metadata.tables))
    print("[migrate] done.", flush=True)


if __name__ == "__main__":
    print(f"[migrate] DATABASE_URL={os.getenv('DATABASE_URL')}", flush=True)
    try:
        run()
        sys.exit(0)
    except Exception as e:
        emit("migrate_error", error=str(e))
        print(f"[migrate] ERROR: {e}", file=sys.stderr, flush=True)
        sys.exit(1)
