"""
模块职能：
- 账户仓储：按用户名/邮箱/id/两种 token 查账户；显式查询角色（不走 ORM relationship）。
- save()：提交（可带上角色记录，同一事务）；撞上唯一索引（用户名/邮箱）时转成字段错误，而不是把 IntegrityError 抛给上层。

token 查找：
- 重置 token：先按 TTL 判断是否过期/格式错误，失败直接返回 None；再查 status=ACTIVE 的账户。
- 激活 token：不看时间，只查 status=INACTIVE 的账户。
过期、格式错误、不存在三种情况对调用方一视同仁（都是 None）。
- clear_expired_password_reset_token()：查验时发现已过期的重置 token 直接置空。

日志：
- acct_saved / acct_integrity_hit / acct_role_assign / acct_reset_token_expired
"""
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.models import Role, User
from portal.core.status import AccountStatus
from portal.core.tokens import is_token_valid, now_ts
from portal.core.validation import EMAIL_TAKEN, USERNAME_TAKEN, AccountValidationError
from portal.infra.logger import emit


def find_by_id(db: Session, account_id: int) -> Optional[User]:
    return db.get(User, account_id)


def find_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def find_by_password_reset_token(db: Session, token: Optional[str], ttl: int,
                                 now: Optional[int] = None) -> Optional[User]:
    if not is_token_valid(token, ttl, now):
        return None
    return (db.query(User)
            .filter(User.password_reset_token == token, User.status == AccountStatus.ACTIVE)
            .first())


def clear_expired_password_reset_token(db: Session, token: Optional[str], ttl: int,
                                      now: Optional[int] = None) -> bool:
    """过期的重置 token 在查验时清掉；返回是否真的清了。"""
    if not token or is_token_valid(token, ttl, now):
        return False
    user = db.query(User).filter(User.password_reset_token == token).first()
    if user is None:
        return False
    user.remove_password_reset_token()
    save(db, user)
    emit("acct_reset_token_expired", account_id=user.id)
    return True


def find_by_account_activation_token(db: Session, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    return (db.query(User)
            .filter(User.account_activation_token == token, User.status == AccountStatus.INACTIVE)
            .first())


def list_accounts(db: Session, status: Optional[int] = None) -> List[User]:
    q = db.query(User)
    if status is not None:
        q = q.filter(User.status == status)
    return q.order_by(User.id.asc()).all()


# ---------------------------------------------------------------------------
# 角色
# ---------------------------------------------------------------------------

def find_role_for_account(db: Session, account_id: int) -> Optional[Role]:
    return db.query(Role).filter(Role.user_id == account_id).first()


def role_name(db: Session, account_id: int) -> Optional[str]:
    role = find_role_for_account(db, account_id)
    return role.item_name if role else None


def assign_role(db: Session, account_id: int, item_name: str, commit: bool = True) -> Role:
    """每个账户只保留一条角色记录：已有则替换。"""
    existing = find_role_for_account(db, account_id)
    if existing is not None:
        if existing.item_name == item_name:
            return existing
        db.delete(existing)
        db.flush()
    role = Role(item_name=item_name, user_id=account_id, created_at=now_ts())
    db.add(role)
    if commit:
        db.commit()
    emit("acct_role_assign", account_id=account_id, role=item_name)
    return role


# ---------------------------------------------------------------------------
# 持久化
# ---------------------------------------------------------------------------

def _conflict_errors(db: Session, account_id: Optional[int], username: str, email: str) -> dict:
    errors = {}
    q = db.query(User.id)
    if account_id is not None:
        q = q.filter(User.id != account_id)
    if q.filter(User.username == username).first():
        errors["username"] = [USERNAME_TAKEN]
    if q.filter(User.email == email).first():
        errors["email"] = [EMAIL_TAKEN]
    return errors


def save(db: Session, account: User, role: Optional[str] = None) -> User:
    """
    落库账户。
    - role 不为空时，账户与角色记录在同一个事务里提交
    - 唯一索引冲突 → 回滚，查明是哪个字段冲突，抛 AccountValidationError（"already taken"）
    - 其他 IntegrityError 回滚后原样抛出
    """
    # rollback 会让已持久化对象的属性过期，先记下本次要写的值
    account_id, username, email = account.id, account.username, account.email
    try:
        db.add(account)
        if role is not None:
            db.flush()
            assign_role(db, account.id, role, commit=False)
        db.commit()
        db.refresh(account)
    except IntegrityError:
        db.rollback()
        errors = _conflict_errors(db, account_id, username, email)
        if errors:
            emit("acct_integrity_hit", username=username, fields=sorted(errors))
            raise AccountValidationError(errors)
        raise
    emit("acct_saved", account_id=account.id, status=account.status)
    return account
