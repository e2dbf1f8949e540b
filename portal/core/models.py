""""
模块职能：

定义两张表：

user：账户（用户名/邮箱/密码哈希/状态/auth_key/两种 token/时间戳）

auth_assignment：账户 → 角色名（每个账户至多一条）

主要类型/方法：

User：满足 Authenticatable（get_id / get_auth_key / validate_auth_key）

User.generate_password_reset_token() / remove_password_reset_token()

User.generate_account_activation_token() / remove_account_activation_token()

Role：item_name / user_id / created_at

created_at / updated_at 为 unix 秒；User 与 Role 之间不建 relationship，
角色统一走 repository.find_role_for_account() 显式查询。"""

# portal/core/models.py
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base

from portal.core.security import compare_keys
from portal.core.status import AccountStatus, status_name
from portal.core.tokens import generate_token, now_ts

Base = declarative_base()


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    status = Column(Integer, nullable=False, default=AccountStatus.ACTIVE.value)
    auth_key = Column(String(32), nullable=False)
    password_reset_token = Column(String(255), unique=True, nullable=True)
    account_activation_token = Column(String(255), unique=True, nullable=True)
    created_at = Column(Integer, nullable=False, default=now_ts)
    updated_at = Column(Integer, nullable=False, default=now_ts, onupdate=now_ts)

    # Authenticatable
    def get_id(self) -> int:
        return self.id

    def get_auth_key(self) -> str:
        return self.auth_key

    def validate_auth_key(self, auth_key: str) -> bool:
        return compare_keys(self.get_auth_key(), auth_key)

    # token helpers
    def generate_password_reset_token(self, now: Optional[int] = None):
        self.password_reset_token = generate_token(now)

    def remove_password_reset_token(self):
        self.password_reset_token = None

    def generate_account_activation_token(self, now: Optional[int] = None):
        self.account_activation_token = generate_token(now)

    def remove_account_activation_token(self):
        self.account_activation_token = None

    @property
    def status_name(self) -> str:
        return status_name(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


class Role(Base):
    __tablename__ = "auth_assignment"

    item_name = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(Integer, nullable=True, default=now_ts)
    # 一个账户只允许一个角色
    __table_args__ = (UniqueConstraint("user_id", name="uq_auth_assignment_user"),)
