# models/notification_model.py
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    SUBSCRIPTION_CONFIRMED = "subscription-confirmed"
    ALREADY_SUBSCRIBED = "already-subscribed"
    CONFIRM_ADDRESS_CHANGE = "confirm-address-change"
    CONFIRM_SUBSCRIPTION = "confirm-subscription"
    CONFIRM_UNSUBSCRIPTION = "confirm-unsubscription"
    UNSUBSCRIPTION_CONFIRMED = "unsubscription-confirmed"


# "%s" is replaced by the list name
SUBJECTS = {
    NotificationKind.SUBSCRIPTION_CONFIRMED: "%s: Subscription Confirmed",
    NotificationKind.ALREADY_SUBSCRIBED: "%s: Email Address Already Registered",
    NotificationKind.CONFIRM_ADDRESS_CHANGE: "%s: Please Confirm Email Change in Subscription",
    NotificationKind.CONFIRM_SUBSCRIPTION: "%s: Please Confirm Subscription",
    NotificationKind.CONFIRM_UNSUBSCRIPTION: "%s: Please Confirm Unsubscription",
    NotificationKind.UNSUBSCRIPTION_CONFIRMED: "%s: Unsubscribe Confirmed",
}

# Confirmation-type mails go out even with disableConfirmations set
ALWAYS_SEND = frozenset({
    NotificationKind.ALREADY_SUBSCRIBED,
    NotificationKind.CONFIRM_ADDRESS_CHANGE,
    NotificationKind.CONFIRM_SUBSCRIPTION,
    NotificationKind.CONFIRM_UNSUBSCRIPTION,
})


class MailAddress(BaseModel):
    name: str = ""
    address: str

    def formatted(self) -> str:
        return f"{self.name} <{self.address}>" if self.name else str(self.address)


class MailEnvelope(BaseModel):
    sender: MailAddress = Field(alias="from")
    to: MailAddress
    subject: str
    encryption_keys: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class MailContent(BaseModel):
    html: str
    text: str
    merge_data: Dict[str, Any] = Field(default_factory=dict)


class DispatchResult(BaseModel):
    kind: NotificationKind
    status: str  # "sent", "skipped" or "failed"
    recipient: Optional[str] = None
    template_source: Optional[str] = None
    error: Optional[str] = None
