"""E-mail composition for selected users: template catalogue and the sent-message history."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pydantic
from pydantic import Field

from user_service.schemas import CamelModel, UserResponse

from .storage import MESSAGE_HISTORY_KEY, LocalStorage

logger = logging.getLogger(__name__)

NAME_PLACEHOLDER = "{{name}}"
# Used for {{name}} when a message goes to several recipients.
GENERIC_NAME = "User"


@dataclass(frozen=True)
class EmailTemplate:
    name: str
    subject: str
    body: str


EMAIL_TEMPLATES: Dict[str, EmailTemplate] = {
    "WELCOME": EmailTemplate(
        name="Welcome Message",
        subject="Welcome to Our Platform!",
        body="Dear {{name}},\n\nWelcome to our platform! We are excited to have you on board.\n\nBest regards,\nThe Team",
    ),
    "ACCOUNT_UPDATE": EmailTemplate(
        name="Account Update",
        subject="Your Account Has Been Updated",
        body="Dear {{name}},\n\nYour account information has been updated successfully.\n\nBest regards,\nThe Team",
    ),
    "REMINDER": EmailTemplate(
        name="Reminder",
        subject="Reminder: Action Required",
        body="Dear {{name}},\n\nThis is a friendly reminder about pending actions on your account.\n\nBest regards,\nThe Team",
    ),
    "CUSTOM": EmailTemplate(name="Custom Message", subject="", body=""),
}


class EmailMessage(CamelModel):
    """A sent message as kept in the history."""
    id: str
    recipients: List[int]
    recipient_names: List[str]
    recipient_emails: List[str]
    subject: str
    body: str
    template: Optional[str] = None
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def get_template(key: str) -> EmailTemplate:
    try:
        return EMAIL_TEMPLATES[key]
    except KeyError:
        raise ValueError(f"Unknown template '{key}'. Must be one of: {', '.join(EMAIL_TEMPLATES)}")


def render_body(body: str, recipients: Sequence[UserResponse]) -> str:
    """Replaces every {{name}} with the recipient's name, or 'User' for several recipients."""
    name = recipients[0].name if len(recipients) == 1 else GENERIC_NAME
    return body.replace(NAME_PLACEHOLDER, name)


def compose(
    recipients: Sequence[UserResponse],
    subject: str,
    body: str,
    template: Optional[str] = None,
) -> EmailMessage:
    if not recipients:
        raise ValueError("A message needs at least one recipient")
    if template == "CUSTOM":
        template = None
    elif template is not None:
        get_template(template)

    return EmailMessage(
        id=str(time.time_ns() // 1_000_000),
        recipients=[u.id for u in recipients],
        recipient_names=[u.name for u in recipients],
        recipient_emails=[u.email for u in recipients],
        subject=subject,
        body=render_body(body, recipients),
        template=template,
    )


class MessageHistory:
    """Sent messages, most recent first, persisted under `messageHistory`."""

    def __init__(self, storage: LocalStorage):
        self._storage = storage
        self._messages = self._load()

    def _load(self) -> List[EmailMessage]:
        raw_messages = self._storage.get(MESSAGE_HISTORY_KEY, [])
        if not isinstance(raw_messages, list):
            logger.error(f"Ignoring persisted '{MESSAGE_HISTORY_KEY}': expected a list.")
            return []
        messages = []
        for raw in raw_messages:
            try:
                messages.append(EmailMessage.model_validate(raw))
            except pydantic.ValidationError as e:
                logger.error(f"Skipping unreadable message: {e}")
        return messages

    def _save(self) -> None:
        self._storage.set(MESSAGE_HISTORY_KEY, [m.model_dump(by_alias=True, mode="json") for m in self._messages])

    @property
    def messages(self) -> List[EmailMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def record(self, message: EmailMessage) -> None:
        self._messages.insert(0, message)
        self._save()
        logger.info(f"Message '{message.subject}' sent to {len(message.recipients)} recipient(s).")

    def send(
        self,
        recipients: Sequence[UserResponse],
        subject: str,
        body: str,
        template: Optional[str] = None,
    ) -> EmailMessage:
        message = compose(recipients, subject, body, template)
        self.record(message)
        return message

    def send_template(self, key: str, recipients: Sequence[UserResponse]) -> EmailMessage:
        template = get_template(key)
        return self.send(recipients, template.subject, template.body, key)

    def clear(self) -> None:
        self._messages = []
        self._save()
