"""
模块职能：
- 账户字段校验：一组按顺序执行的规则，每条规则接收候选数据，返回 [(字段, 消息)]。
- 某字段一旦出错，后续规则对该字段的结果不再记录（每个字段只报第一条错误）。
- 密码策略由 password_rule(force_strong) 在启动时决定，不读全局配置。

规则顺序：
trim(username, email) → required(username, email, status) → email → username 长度 2..255
→ status 取值 → password 必填（仅 create 场景）→ 密码策略 → username 唯一 → email 唯一

唯一性检查只是预校验；真正的保证是数据库唯一索引（见 repository.save）。
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from portal.core.models import User
from portal.core.status import is_known

SCENARIO_CREATE = "create"
SCENARIO_UPDATE = "update"

LABELS = {
    "username": "Username",
    "email": "Email",
    "password": "Password",
    "status": "Status",
}

USERNAME_TAKEN = "This username has already been taken."
EMAIL_TAKEN = "This email address has already been taken."

FieldErrors = Dict[str, List[str]]
Error = Tuple[str, str]


@dataclass
class AccountForm:
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    status: Optional[int] = None
    scenario: str = SCENARIO_CREATE
    # update 场景下唯一性检查要排除自己
    account_id: Optional[int] = None
    # signup 不提交 status，由服务端决定
    status_required: bool = False


@dataclass
class RuleContext:
    db: Optional[Session] = None


Validator = Callable[[AccountForm, RuleContext], List[Error]]


class AccountValidationError(ValueError):
    """字段级校验失败；errors = {字段: [消息]}。"""

    def __init__(self, errors: FieldErrors):
        super().__init__("validation_failed")
        self.errors = errors

    def first(self, field_name: str) -> Optional[str]:
        msgs = self.errors.get(field_name) or []
        return msgs[0] if msgs else None


def _label(name: str) -> str:
    return LABELS.get(name, name.replace("_", " ").capitalize())


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


# ---------------------------------------------------------------------------
# 基础规则
# ---------------------------------------------------------------------------

def trim(*names: str) -> Validator:
    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        for n in names:
            v = getattr(form, n)
            if isinstance(v, str):
                setattr(form, n, v.strip())
        return []
    return rule


def required(*names: str, on: Optional[str] = None) -> Validator:
    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        if on and form.scenario != on:
            return []
        errs = []
        for n in names:
            if n == "status" and not form.status_required:
                continue
            if _blank(getattr(form, n)):
                errs.append((n, f"{_label(n)} cannot be blank."))
        return errs
    return rule


def email(name: str = "email") -> Validator:
    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        v = getattr(form, name)
        if _blank(v):
            return []
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError:
            return [(name, f"{_label(name)} is not a valid email address.")]
        return []
    return rule


def string_length(name: str, min_len: int, max_len: int) -> Validator:
    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        v = getattr(form, name)
        if _blank(v):
            return []
        if len(v) < min_len:
            return [(name, f"{_label(name)} should contain at least {min_len} characters.")]
        if len(v) > max_len:
            return [(name, f"{_label(name)} should contain at most {max_len} characters.")]
        return []
    return rule


def status_in_range() -> Validator:
    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        if form.status is None:
            return []
        if not is_known(form.status):
            return [("status", "Status is invalid.")]
        return []
    return rule


def unique(name: str, message: str) -> Validator:
    column = getattr(User, name)

    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        v = getattr(form, name)
        if _blank(v) or ctx.db is None:
            return []
        q = ctx.db.query(User.id).filter(column == v)
        if form.account_id is not None:
            q = q.filter(User.id != form.account_id)
        if q.first():
            return [(name, message)]
        return []
    return rule


# ---------------------------------------------------------------------------
# 密码策略
# ---------------------------------------------------------------------------

STRENGTH_PRESETS: Dict[str, Dict[str, int]] = {
    "simple": {"min": 6, "upper": 0, "lower": 1, "digit": 1, "special": 0, "has_user": 1, "has_email": 1},
    "normal": {"min": 8, "upper": 1, "lower": 1, "digit": 1, "special": 0, "has_user": 1, "has_email": 1},
    "fair": {"min": 10, "upper": 1, "lower": 1, "digit": 1, "special": 1, "has_user": 1, "has_email": 1},
    "medium": {"min": 10, "upper": 1, "lower": 1, "digit": 2, "special": 1, "has_user": 1, "has_email": 1},
    "strong": {"min": 12, "upper": 2, "lower": 2, "digit": 2, "special": 2, "has_user": 1, "has_email": 1},
}


@dataclass(frozen=True)
class PasswordRule:
    kind: str  # "length" | "strength"
    min: Optional[int] = None
    preset: Optional[str] = None

    def check(self, password: str, username: Optional[str] = None,
              email_addr: Optional[str] = None) -> Optional[str]:
        """返回第一条错误消息；通过返回 None。"""
        if self.kind == "length":
            if len(password) < (self.min or 0):
                return f"Password should contain at least {self.min} characters."
            return None
        return check_strength(password, self.preset or "normal", username, email_addr)


def password_rule(force_strong: bool) -> PasswordRule:
    if force_strong:
        return PasswordRule(kind="strength", preset="normal")
    return PasswordRule(kind="length", min=6)


def check_strength(password: str, preset: str, username: Optional[str] = None,
                   email_addr: Optional[str] = None) -> Optional[str]:
    p = STRENGTH_PRESETS[preset]
    n = len(password)
    if n < p["min"]:
        return f"Password should contain at least {p['min']} characters ({n} given)."

    counts = {
        "upper": sum(1 for c in password if c.isupper()),
        "lower": sum(1 for c in password if c.islower()),
        "digit": sum(1 for c in password if c.isdigit()),
        "special": sum(1 for c in password if not c.isalnum()),
    }
    words = {
        "upper": "upper case character",
        "lower": "lower case character",
        "digit": "numeric / digit character",
        "special": "special character",
    }
    for key in ("upper", "lower", "digit", "special"):
        need = p[key]
        if counts[key] < need:
            plural = "s" if need > 1 else ""
            return (f"Password should contain at least {need} {words[key]}{plural} "
                    f"({counts[key]} found).")

    lowered = password.lower()
    if p["has_user"] and username and username.lower() in lowered:
        return "Password should not contain the username."
    if p["has_email"] and email_addr and email_addr.lower() in lowered:
        return "Password should not contain the email."
    return None


def password_policy(policy: PasswordRule, name: str = "password") -> Validator:
    def rule(form: AccountForm, ctx: RuleContext) -> List[Error]:
        v = getattr(form, name)
        # 只有未填（None / ""）才跳过；纯空白照样量长度
        if v is None or v == "":
            return []
        msg = policy.check(v, form.username, form.email)
        return [(name, msg)] if msg else []
    return rule


# ---------------------------------------------------------------------------
# 组装与执行
# ---------------------------------------------------------------------------

@dataclass
class AccountRules:
    password: PasswordRule
    validators: List[Validator] = field(default_factory=list)


def build_rules(force_strong: bool) -> AccountRules:
    policy = password_rule(force_strong)
    return AccountRules(password=policy, validators=[
        trim("username", "email"),
        required("username", "email", "status"),
        email("email"),
        string_length("username", 2, 255),
        status_in_range(),
        required("password", on=SCENARIO_CREATE),
        password_policy(policy),
        unique("username", USERNAME_TAKEN),
        unique("email", EMAIL_TAKEN),
    ])


def run_rules(form: AccountForm, rules: AccountRules, ctx: Optional[RuleContext] = None) -> FieldErrors:
    ctx = ctx or RuleContext()
    errors: FieldErrors = {}
    for rule in rules.validators:
        for name, msg in rule(form, ctx):
            if name in errors:
                continue
            errors[name] = [msg]
    return errors


def validate(form: AccountForm, rules: AccountRules, ctx: Optional[RuleContext] = None) -> AccountForm:
    """校验通过返回（已 trim 的）form；否则抛 AccountValidationError。"""
    errors = run_rules(form, rules, ctx)
    if errors:
        raise AccountValidationError(errors)
    return form


def validate_new_password(password: Optional[str], policy: PasswordRule,
                          username: Optional[str] = None, email_addr: Optional[str] = None):
    """重置密码时只校验密码本身。"""
    if _blank(password):
        raise AccountValidationError({"password": ["Password cannot be blank."]})
    msg = policy.check(password, username, email_addr)
    if msg:
        raise AccountValidationError({"password": [msg]})
