# tests/test_tokens.py
import pytest

from portal.core.models import User
from portal.core.tokens import generate_token, is_token_valid, token_timestamp

T = 1_700_000_000
TTL = 3600


def test_generated_token_format():
    token = generate_token(now=T)
    random_part, _, ts = token.rpartition("_")
    assert ts == str(T)
    assert len(random_part) == 32


def test_generated_tokens_are_random():
    assert generate_token(now=T) != generate_token(now=T)


@pytest.mark.parametrize("token", [None, ""])
def test_empty_token_is_invalid(token):
    assert is_token_valid(token, TTL, now=T) is False


def test_reset_token_expiry_boundaries():
    token = generate_token(now=T)
    assert is_token_valid(token, TTL, now=T + 3599)
    assert is_token_valid(token, TTL, now=T + 3600)
    assert not is_token_valid(token, TTL, now=T + 3601)


def test_non_numeric_suffix_is_always_expired():
    assert token_timestamp("abc_notatime") == 0
    assert not is_token_valid("abc_notatime", TTL, now=T)
    assert not is_token_valid("no-separator-at-all", TTL, now=T)


def test_only_last_segment_is_the_timestamp():
    # 随机串里本身带 "_" 时，以最后一段为准
    token = f"ab_{T + 10**6}_cd_{T}"
    assert token_timestamp(token) == T
    assert is_token_valid(token, TTL, now=T + 10)
    assert not is_token_valid(token, TTL, now=T + TTL + 1)


def test_account_token_helpers():
    user = User(username="alice", email="alice@example.com")
    user.generate_password_reset_token(now=T)
    user.generate_account_activation_token(now=T)
    assert token_timestamp(user.password_reset_token) == T
    assert token_timestamp(user.account_activation_token) == T

    user.remove_password_reset_token()
    user.remove_account_activation_token()
    assert user.password_reset_token is None
    assert user.account_activation_token is None
