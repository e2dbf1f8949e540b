"""认证能力接口：任何提供 get_id / get_auth_key / validate_auth_key 的对象都可作为登录身份。"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class Authenticatable(Protocol):
    def get_id(self) -> int: ...

    def get_auth_key(self) -> str: ...

    def validate_auth_key(self, auth_key: str) -> bool: ...
