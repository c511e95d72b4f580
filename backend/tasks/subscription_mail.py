# backend/tasks/subscription_mail.py
"""
Subscription notification mails (confirmations, welcome, goodbye)

Each notification goes through the same steps:
    1. load the list's fields and settings          (errors propagate)
    2. skip non-confirmation mails when the list has confirmations disabled
    3. build the merge context
    4. pick custom or built-in templates             (problems fall back to built-in)
    5. render
    6. hand the message to the mail sink             (errors are logged only)
"""
import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from celery import shared_task
from kombu.exceptions import KombuError

from core.config import settings
from core.errors import DeliveryError
from core.merge_context import build_merge_context
from core.template_resolver import TemplateResolver
from models.field_model import LIST_SETTING_KEYS, ListInfo, ListSettings
from models.notification_model import (
    ALWAYS_SEND,
    SUBJECTS,
    DispatchResult,
    MailAddress,
    MailContent,
    MailEnvelope,
    NotificationKind,
)
from routes import field_handler, setting
from routes.smtp_services import DirectMailSink, get_email_service
from routes.templates import custom_form_store

logger = logging.getLogger(__name__)


# ============================================
# DELIVERY TASK
# ============================================

@shared_task(
    name="tasks.deliver_subscription_mail",
    bind=True,
    autoretry_for=(DeliveryError,),
    max_retries=settings.MAX_EMAIL_RETRIES,
    retry_backoff=True,
    retry_backoff_max=settings.RETRY_BACKOFF_MAX_SECONDS,
)
def deliver_subscription_mail(self, envelope: dict, content: dict):
    """Send one rendered subscription mail through the configured email service"""
    envelope = MailEnvelope.model_validate(envelope)
    content = MailContent.model_validate(content)

    result = get_email_service().send_email(envelope, content)
    if not result.success:
        logger.error(
            f"Delivery of {envelope.subject!r} to {envelope.to.address} failed "
            f"(attempt {self.request.retries + 1}): {result.error}"
        )
        raise DeliveryError(result.error or "delivery failed")

    logger.info(f"Delivered {envelope.subject!r} to {envelope.to.address}")
    return {"status": "sent", "recipient": envelope.to.address, "message_id": result.message_id}


class CeleryMailSink:
    """Queues messages for the delivery task"""

    def __init__(self, queue: Optional[str] = None):
        self.queue = queue or settings.MAIL_QUEUE_NAME

    async def send(self, envelope: MailEnvelope, content: MailContent) -> None:
        try:
            await asyncio.to_thread(
                deliver_subscription_mail.apply_async,
                args=[envelope.model_dump(by_alias=True), content.model_dump()],
                queue=self.queue,
            )
        except (KombuError, OSError) as e:
            raise DeliveryError(f"Cannot queue mail to {envelope.to.address}: {e}") from e


def default_mail_sink():
    if settings.MOCK_EMAIL_SENDING:
        return DirectMailSink()
    return CeleryMailSink()


# ============================================
# DISPATCHER
# ============================================

class SubscriptionMailer:
    def __init__(self, field_store=None, settings_store=None, template_resolver=None, mail_sink=None):
        self.field_store = field_store or field_handler.field_store
        self.settings_store = settings_store or setting.settings_store
        self.template_resolver = template_resolver or TemplateResolver(custom_form_store)
        self.mail_sink = mail_sink or default_mail_sink()

    async def send_mail(
        self,
        mailing_list: ListInfo,
        email: str,
        kind: NotificationKind,
        relative_urls: Mapping[str, str],
        subscription: Mapping[str, Any],
        always_send: Optional[bool] = None,
    ) -> DispatchResult:
        kind = NotificationKind(kind)
        if always_send is None:
            always_send = kind in ALWAYS_SEND

        fields, setting_values = await asyncio.gather(
            self.field_store.list_fields(mailing_list.id),
            self.settings_store.get(LIST_SETTING_KEYS),
        )
        list_settings = ListSettings.from_store(setting_values)

        if not always_send and list_settings.disable_confirmations:
            logger.info(f"Confirmations disabled, not sending {kind.value} for list {mailing_list.id}")
            return DispatchResult(kind=kind, status="skipped", recipient=email)

        context = build_merge_context(mailing_list, list_settings, relative_urls, subscription, fields)

        pair = await self.template_resolver.resolve(mailing_list, kind.value)
        html, text, source = self.template_resolver.render(pair, context.data)

        envelope = MailEnvelope(
            sender=MailAddress(name=list_settings.default_from or "", address=list_settings.default_address or ""),
            to=MailAddress(name=context.recipient_name, address=email),
            subject=SUBJECTS[kind] % mailing_list.name,
            encryption_keys=context.encryption_keys,
        )
        content = MailContent(html=html, text=text, merge_data=context.data)

        try:
            await self.mail_sink.send(envelope, content)
        except DeliveryError as e:
            logger.error(f"Subscription mail {kind.value} for list {mailing_list.id} to {email} failed: {e}")
            return DispatchResult(kind=kind, status="failed", recipient=email, template_source=source, error=str(e))

        logger.info(f"Subscription mail {kind.value} for list {mailing_list.id} submitted to {email}")
        return DispatchResult(kind=kind, status="sent", recipient=email, template_source=source)

    # -- one entry point per notification ----------------------------------

    async def send_subscription_confirmed(self, mailing_list: ListInfo, email: str, subscription: Mapping[str, Any]):
        return await self.send_mail(mailing_list, email, NotificationKind.SUBSCRIPTION_CONFIRMED,
                                    manage_urls(mailing_list, subscription), subscription)

    async def send_already_subscribed(self, mailing_list: ListInfo, email: str, subscription: Mapping[str, Any]):
        return await self.send_mail(mailing_list, email, NotificationKind.ALREADY_SUBSCRIBED,
                                    manage_urls(mailing_list, subscription), subscription)

    async def send_confirm_address_change(self, mailing_list: ListInfo, email: str, cid: str,
                                          subscription: Mapping[str, Any]):
        return await self.send_mail(mailing_list, email, NotificationKind.CONFIRM_ADDRESS_CHANGE,
                                    confirm_urls(cid), subscription)

    async def send_confirm_subscription(self, mailing_list: ListInfo, email: str, cid: str,
                                        subscription: Mapping[str, Any]):
        return await self.send_mail(mailing_list, email, NotificationKind.CONFIRM_SUBSCRIPTION,
                                    confirm_urls(cid), subscription)

    async def send_confirm_unsubscription(self, mailing_list: ListInfo, email: str, cid: str,
                                          subscription: Mapping[str, Any]):
        return await self.send_mail(mailing_list, email, NotificationKind.CONFIRM_UNSUBSCRIPTION,
                                    confirm_urls(cid), subscription)

    async def send_unsubscription_confirmed(self, mailing_list: ListInfo, email: str, subscription: Mapping[str, Any]):
        relative_urls = {"subscribeUrl": f"/subscription/{mailing_list.cid}?cid={subscription.get('cid')}"}
        return await self.send_mail(mailing_list, email, NotificationKind.UNSUBSCRIPTION_CONFIRMED,
                                    relative_urls, subscription)


def manage_urls(mailing_list: ListInfo, subscription: Mapping[str, Any]) -> Dict[str, str]:
    cid = subscription.get("cid")
    return {
        "preferencesUrl": f"/subscription/{mailing_list.cid}/manage/{cid}",
        "unsubscribeUrl": f"/subscription/{mailing_list.cid}/unsubscribe/{cid}",
    }


def confirm_urls(cid: str) -> Dict[str, str]:
    return {"confirmUrl": f"/subscription/confirm/{cid}"}


_subscription_mailer: Optional[SubscriptionMailer] = None


def get_subscription_mailer() -> SubscriptionMailer:
    """Shared mailer wired to the default stores and sink"""
    global _subscription_mailer
    if _subscription_mailer is None:
        _subscription_mailer = SubscriptionMailer()
    return _subscription_mailer
