"""角色名与说明（auth_assignment.item_name 的取值）。"""
from typing import Dict

THE_CREATOR = "theCreator"
ADMIN = "admin"
EDITOR = "editor"
PREMIUM = "premium"
MEMBER = "member"

DEFAULT_ROLE = MEMBER
# 可以管理账户的角色
ADMIN_ROLES = {THE_CREATOR, ADMIN}

ROLE_DEFINITIONS: Dict[str, Dict[str, str]] = {
    THE_CREATOR: {
        "label": "The Creator",
        "description": "Owner of the installation; can manage every account including admins.",
    },
    ADMIN: {
        "label": "Admin",
        "description": "Manages accounts, statuses and roles.",
    },
    EDITOR: {
        "label": "Editor",
        "description": "Creates and edits content.",
    },
    PREMIUM: {
        "label": "Premium",
        "description": "Member with access to premium content.",
    },
    MEMBER: {
        "label": "Member",
        "description": "Default role given on signup.",
    },
}


def is_known_role(item_name: str) -> bool:
    return item_name in ROLE_DEFINITIONS
