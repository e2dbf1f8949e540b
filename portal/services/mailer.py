"""
模块职能：
- 发信协作方：激活邮件、重置密码邮件。
- 默认实现 LogMailer 不连 SMTP，只把收件人/主题/链接写成 mail_send 事件（链接里的 token 打码）；
  测试里换成 OutboxMailer 直接读取内容。
"""
from dataclasses import dataclass, field
from typing import List, Protocol

from fastapi import Request

from portal.infra.logger import emit


@dataclass
class Message:
    to: str
    subject: str
    body: str
    link: str


class Mailer(Protocol):
    def send(self, message: Message) -> bool: ...


def redact_link(link: str) -> str:
    """token=... 之后的内容不进日志"""
    head, sep, _ = link.partition("token=")
    return f"{head}{sep}***" if sep else link


class LogMailer:
    def __init__(self, sender: str):
        self.sender = sender

    def send(self, message: Message) -> bool:
        emit("mail_send", sender=self.sender, to=message.to, subject=message.subject,
             link=redact_link(message.link))
        return True


@dataclass
class OutboxMailer:
    outbox: List[Message] = field(default_factory=list)

    def send(self, message: Message) -> bool:
        self.outbox.append(message)
        return True


def activation_message(base_url: str, app_name: str, to: str, username: str, token: str) -> Message:
    link = f"{base_url}/site/activate-account?token={token}"
    body = (f"Hello {username},\n\n"
            f"Follow the link below to activate your account:\n\n{link}\n")
    return Message(to=to, subject=f"Account activation for {app_name}", body=body, link=link)


def password_reset_message(base_url: str, app_name: str, to: str, username: str, token: str) -> Message:
    link = f"{base_url}/site/reset-password?token={token}"
    body = (f"Hello {username},\n\n"
            f"Follow the link below to reset your password:\n\n{link}\n")
    return Message(to=to, subject=f"Password reset for {app_name}", body=body, link=link)


def get_mailer(request: Request) -> Mailer:
    mailer = getattr(request.app.state, "mailer", None)
    if mailer is None:
        settings = getattr(request.app.state, "settings", None)
        mailer = LogMailer(sender=settings.support_email if settings else "support@example.com")
        request.app.state.mailer = mailer
    return mailer
