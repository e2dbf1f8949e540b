# portal/core/security.py
""""封装口令哈希/校验（passlib[bcrypt]）、auth_key 生成与 JWT 签发/解析。

create_access_token() 把 sub/username/role/ak(auth_key)/exp 写入 JWT 负载；
auth_key 在重置密码后轮换，旧 token 随之失效。"""

import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt  # PyJWT
from passlib.context import CryptContext

from portal.core.tokens import random_string

ALGORITHM = "HS256"
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def generate_auth_key() -> str:
    return random_string()


def compare_keys(a: str, b: str) -> bool:
    return hmac.compare_digest((a or "").encode(), (b or "").encode())


def create_access_token(payload: Dict[str, Any], secret_key: str, expire_minutes: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    to_encode = dict(payload)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> Dict[str, Any]:
    """失败时抛 jwt.PyJWTError（含 ExpiredSignatureError），由调用方转成 401。"""
    return jwt.decode(token, secret_key, algorithms=[ALGORITHM])
