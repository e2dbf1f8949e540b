"""模块职能：

定义账户状态（DELETED=0 / INACTIVE=1 / ACTIVE=10）与合法迁移

主要函数/枚举：

AccountStatus：状态枚举（数值即库里存的 int）

status_name(status)：状态 → 显示名；0/1 以外的值一律显示为 "Active"

status_list()：固定顺序的 {值: 显示名}，用于下拉框

can_transit(src, dst)：管理员改状态时判断是否允许"""

from enum import IntEnum
from typing import Dict


class AccountStatus(IntEnum):
    DELETED = 0
    INACTIVE = 1
    ACTIVE = 10


# 显示顺序固定：Active, Inactive, Deleted
STATUS_LABELS: Dict[int, str] = {
    AccountStatus.ACTIVE: "Active",
    AccountStatus.INACTIVE: "Inactive",
    AccountStatus.DELETED: "Deleted",
}

VALID = {
    AccountStatus.INACTIVE: {AccountStatus.ACTIVE, AccountStatus.DELETED},
    AccountStatus.ACTIVE: {AccountStatus.INACTIVE, AccountStatus.DELETED},
    AccountStatus.DELETED: {AccountStatus.ACTIVE},
}


def status_name(status: int) -> str:
    # 未知值按 Active 处理，不报错
    if status == AccountStatus.DELETED:
        return "Deleted"
    if status == AccountStatus.INACTIVE:
        return "Inactive"
    return "Active"


def status_list() -> Dict[int, str]:
    return {int(k): v for k, v in STATUS_LABELS.items()}


def is_known(status: int) -> bool:
    return status in STATUS_LABELS


def can_transit(src: int, dst: int) -> bool:
    if not is_known(src) or not is_known(dst):
        return False
    return AccountStatus(dst) in VALID[AccountStatus(src)]
