# portal/api/users.py
"""
账户管理 API（仅 theCreator / admin）
------------------------------------
- GET   /users                 列表（可按 status 过滤），带状态显示名与角色名
- POST  /users                 创建账户（指定 status 与角色）
- PATCH /users/{id}/status     修改状态；删除 = 置 DELETED（软删除）
- GET   /users/statuses        状态下拉：[{"value","label"}]，顺序 Active, Inactive, Deleted
- GET   /users/roles           角色说明

返回结构与 /api/me 相同（AccountOut）。
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from portal.api.auth import AccountOut, invalid
from portal.api.deps.auth import require_admin
from portal.core import rbac
from portal.core.config import get_rules
from portal.core.models import User
from portal.core.status import status_list
from portal.core.validation import AccountRules, AccountValidationError
from portal.infra.db import get_db
from portal.infra.logger import emit
from portal.services import account_flows as flows
from portal.services import accounts as repo

router = APIRouter(prefix="/users", tags=["users"])


class CreateAccountIn(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    status: Optional[int] = None
    item_name: str = rbac.DEFAULT_ROLE


class StatusIn(BaseModel):
    status: int


@router.get("", response_model=List[AccountOut])
def list_users(
    status: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
):
    rows = repo.list_accounts(db, status=status)
    emit("api_users_list", actor=actor.id, status=status if status is not None else "*", count=len(rows))
    return [AccountOut.build(u, repo.role_name(db, u.id)) for u in rows]


@router.get("/statuses")
def statuses(actor: User = Depends(require_admin)):
    return [{"value": value, "label": label} for value, label in status_list().items()]


@router.get("/roles")
def roles(actor: User = Depends(require_admin)):
    return rbac.ROLE_DEFINITIONS


@router.post("", response_model=AccountOut, status_code=201)
def create_user(
    body: CreateAccountIn,
    db: Session = Depends(get_db),
    rules: AccountRules = Depends(get_rules),
    actor: User = Depends(require_admin),
):
    try:
        user = flows.create_account(db, rules, body.username, body.email, body.password,
                                    body.status, body.item_name)
    except AccountValidationError as e:
        raise invalid(e)
    emit("api_users_create", actor=actor.id, account_id=user.id)
    return AccountOut.build(user, repo.role_name(db, user.id))


@router.patch("/{account_id}/status", response_model=AccountOut)
def change_status(
    account_id: int,
    body: StatusIn,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
):
    user = repo.find_by_id(db, account_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Account not found")
    if user.id == actor.id:
        raise HTTPException(status_code=400, detail="You can not change the status of your own account.")
    # theCreator 只能由 theCreator 修改
    if repo.role_name(db, user.id) == rbac.THE_CREATOR and repo.role_name(db, actor.id) != rbac.THE_CREATOR:
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action.")
    try:
        flows.set_status(db, user, body.status)
    except AccountValidationError as e:
        raise invalid(e)
    emit("api_users_status", actor=actor.id, account_id=user.id, status=user.status)
    return AccountOut.build(user, repo.role_name(db, user.id))
