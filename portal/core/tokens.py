"""
模块职能：
- 密码重置 / 账户激活 token 的生成与有效期判断。

格式：<随机串>_<unix 秒>，随机串来自 secrets（URL-safe，字符集本身可能含 "_"）。
只取最后一个 "_" 之后的部分当时间戳；解析失败按 0 处理，即永远过期。
"""
import secrets
import time
from typing import Optional

RANDOM_LENGTH = 32
SEPARATOR = "_"


def now_ts() -> int:
    return int(time.time())


def random_string(length: int = RANDOM_LENGTH) -> str:
    # token_urlsafe(n) 输出约 1.3n 个字符，截到固定长度
    return secrets.token_urlsafe(length)[:length]


def generate_token(now: Optional[int] = None) -> str:
    ts = now_ts() if now is None else int(now)
    return f"{random_string()}{SEPARATOR}{ts}"


def token_timestamp(token: str) -> int:
    tail = token.split(SEPARATOR)[-1]
    try:
        return int(tail)
    except ValueError:
        return 0


def is_token_valid(token: Optional[str], ttl: int, now: Optional[int] = None) -> bool:
    if not token:
        return False
    current = now_ts() if now is None else int(now)
    return token_timestamp(token) + ttl >= current
