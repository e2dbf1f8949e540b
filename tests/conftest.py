# tests/conftest.py
# 先设环境变量，再导入 app（engine / logger 在导入时读取环境）
import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="portal_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'pytest_portal.db')}"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"   # 测试里哈希快一点

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from portal.main import app  # noqa: E402
from portal.core.config import get_rules, get_settings, load_settings  # noqa: E402
from portal.core.models import Base  # noqa: E402
from portal.core.validation import build_rules  # noqa: E402
from portal.infra.db import SessionLocal, engine, init_db  # noqa: E402
from portal.services.mailer import OutboxMailer, get_mailer  # noqa: E402


@pytest.fixture
def client():
    with TestClient(app) as c:
        init_db()  # 保险：lifespan 未触发时也能建表
        yield c


@pytest.fixture(autouse=True)
def _clean_tables():
    init_db()
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def outbox():
    mailer = OutboxMailer()
    app.dependency_overrides[get_mailer] = lambda: mailer
    return mailer.outbox


@pytest.fixture
def configure():
    """按需覆盖配置：configure(force_strong_password=True)"""
    def _apply(**kw):
        settings = load_settings().model_copy(update=kw)
        rules = build_rules(settings.force_strong_password)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_rules] = lambda: rules
        return settings
    return _apply


@pytest.fixture
def settings():
    return load_settings()


@pytest.fixture
def rules():
    return build_rules(False)
