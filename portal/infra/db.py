"""
模块职能：
- 读取 DATABASE_URL，创建 SQLAlchemy 引擎与 SessionLocal
- init_db()：启动时按 Base.metadata 建表（user / auth_assignment）
- get_db()：FastAPI 依赖，每请求一个 Session，用后关闭

唯一性以数据库唯一索引为准，应用层检查只是提前给出友好提示。
"""
import os
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from portal.core.models import Base

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db():
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI 依赖函数：yield 一个 Session，用后自动关闭。"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
