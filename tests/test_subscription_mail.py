"""Tests for the subscription notification dispatcher.

Covers:
- subject line and absolute urls for each notification kind
- disableConfirmations skips only non-confirmation mails
- sink failures are reported, store failures propagate
- queueing through Celery wraps broker errors
"""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from kombu.exceptions import OperationalError

from core.errors import DeliveryError, FieldStoreError, SettingsStoreError
from core.template_resolver import TemplateResolver
from models.field_model import ListInfo
from models.notification_model import MailAddress, MailContent, MailEnvelope, NotificationKind
from tasks.subscription_mail import CeleryMailSink, SubscriptionMailer, manage_urls


@pytest.fixture
def subscription():
    return {"cid": "Sx9", "email": "ann@example.org", "first_name": "Ann", "last_name": "Lee"}


@pytest.fixture
def mailer(field_store, settings_store, sink):
    return SubscriptionMailer(field_store, settings_store, TemplateResolver(), sink)


def _run(coro):
    return asyncio.run(coro)


class TestConfirmSubscription:
    def test_subject_and_confirm_url(self, mailer, sink, mailing_list, subscription) -> None:
        result = _run(mailer.send_confirm_subscription(mailing_list, "ann@example.org", "abc123", subscription))

        assert result.status == "sent"
        envelope, content = sink.messages[0]
        assert envelope.subject == "Weekly News: Please Confirm Subscription"
        assert content.merge_data["confirmUrl"] == "https://lists.example.org/subscription/confirm/abc123"
        assert "https://lists.example.org/subscription/confirm/abc123" in content.text
        assert "https://lists.example.org/subscription/confirm/abc123" in content.html

    def test_envelope(self, mailer, sink, mailing_list, subscription) -> None:
        _run(mailer.send_confirm_subscription(mailing_list, "ann@example.org", "abc123", subscription))
        envelope, _ = sink.messages[0]
        assert envelope.sender == MailAddress(name="Weekly News Team", address="news@example.org")
        assert envelope.to == MailAddress(name="Ann Lee", address="ann@example.org")

    def test_missing_sender_settings(self, mailer, settings_store, sink, mailing_list, subscription) -> None:
        settings_store.values = {"serviceUrl": "https://x.org/"}
        _run(mailer.send_confirm_subscription(mailing_list, "ann@example.org", "abc", subscription))
        assert sink.messages[0][0].sender == MailAddress(name="", address="")


class TestOtherKinds:
    def test_subscription_confirmed_urls(self, mailer, sink, mailing_list, subscription) -> None:
        _run(mailer.send_subscription_confirmed(mailing_list, "ann@example.org", subscription))
        envelope, content = sink.messages[0]
        assert envelope.subject == "Weekly News: Subscription Confirmed"
        assert content.merge_data["preferencesUrl"] == "https://lists.example.org/subscription/Lc1d/manage/Sx9"
        assert content.merge_data["unsubscribeUrl"] == "https://lists.example.org/subscription/Lc1d/unsubscribe/Sx9"

    def test_unsubscription_confirmed_url(self, mailer, sink, mailing_list, subscription) -> None:
        _run(mailer.send_unsubscription_confirmed(mailing_list, "ann@example.org", subscription))
        envelope, content = sink.messages[0]
        assert envelope.subject == "Weekly News: Unsubscribe Confirmed"
        assert content.merge_data["subscribeUrl"] == "https://lists.example.org/subscription/Lc1d?cid=Sx9"

    @pytest.mark.parametrize("method, subject", [
        ("send_confirm_address_change", "Weekly News: Please Confirm Email Change in Subscription"),
        ("send_confirm_unsubscription", "Weekly News: Please Confirm Unsubscription"),
    ])
    def test_confirm_kinds(self, mailer, sink, mailing_list, subscription, method, subject) -> None:
        _run(getattr(mailer, method)(mailing_list, "ann@example.org", "c1", subscription))
        envelope, content = sink.messages[0]
        assert envelope.subject == subject
        assert content.merge_data["confirmUrl"] == "https://lists.example.org/subscription/confirm/c1"

    def test_already_subscribed(self, mailer, sink, mailing_list, subscription) -> None:
        _run(mailer.send_already_subscribed(mailing_list, "ann@example.org", subscription))
        assert sink.messages[0][0].subject == "Weekly News: Email Address Already Registered"

    def test_gpg_keys_forwarded(self, make_field, field_store, mailer, sink, mailing_list, subscription) -> None:
        field_store.fields = [make_field(1, "PGP", "gpg")]
        subscription["custom_pgp_1"] = "-----BEGIN PGP PUBLIC KEY BLOCK-----"
        _run(mailer.send_subscription_confirmed(mailing_list, "ann@example.org", subscription))
        assert sink.messages[0][0].encryption_keys == ["-----BEGIN PGP PUBLIC KEY BLOCK-----"]


class TestDisableConfirmations:
    @pytest.fixture(autouse=True)
    def disabled(self, settings_store):
        settings_store.values["disableConfirmations"] = "true"

    def test_welcome_mail_skipped(self, mailer, sink, mailing_list, subscription) -> None:
        result = _run(mailer.send_subscription_confirmed(mailing_list, "ann@example.org", subscription))
        assert result.status == "skipped"
        assert sink.messages == []

    def test_goodbye_mail_skipped(self, mailer, sink, mailing_list, subscription) -> None:
        result = _run(mailer.send_unsubscription_confirmed(mailing_list, "ann@example.org", subscription))
        assert result.status == "skipped"

    def test_confirmation_still_sent(self, mailer, sink, mailing_list, subscription) -> None:
        result = _run(mailer.send_confirm_subscription(mailing_list, "ann@example.org", "abc", subscription))
        assert result.status == "sent"
        assert len(sink.messages) == 1

    def test_explicit_always_send(self, mailer, sink, mailing_list, subscription) -> None:
        result = _run(mailer.send_mail(mailing_list, "ann@example.org", NotificationKind.SUBSCRIPTION_CONFIRMED,
                                       manage_urls(mailing_list, subscription), subscription,
                                       always_send=True))
        assert result.status == "sent"


class TestFailures:
    def test_sink_failure_reported(self, mailer, sink, mailing_list, subscription, caplog) -> None:
        sink.fail = True
        result = _run(mailer.send_confirm_subscription(mailing_list, "ann@example.org", "abc", subscription))

        assert result.status == "failed"
        assert result.error == "relay refused the message"
        assert "list-1" in caplog.text

    def test_broken_custom_template_still_sent(self, field_store, settings_store, sink, subscription) -> None:
        store = AsyncMock()
        store.resolve_override.return_value = {"text": "{{ title + 1 }}", "html": "<p>x</p>"}
        mailer = SubscriptionMailer(field_store, settings_store, TemplateResolver(store), sink)
        custom_list = ListInfo(id="list-1", cid="Lc1d", name="Weekly News", default_form="form-7")

        result = _run(mailer.send_confirm_subscription(custom_list, "ann@example.org", "abc", subscription))

        assert result.status == "sent"
        assert "https://lists.example.org/subscription/confirm/abc" in sink.messages[0][1].text

    def test_field_store_failure_propagates(self, field_store, settings_store, sink, mailing_list,
                                            subscription) -> None:
        field_store.error = FieldStoreError("mongo down")
        mailer = SubscriptionMailer(field_store, settings_store, TemplateResolver(), sink)
        with pytest.raises(FieldStoreError):
            _run(mailer.send_confirm_subscription(mailing_list, "ann@example.org", "abc", subscription))
        assert sink.messages == []

    def test_settings_store_failure_propagates(self, field_store, settings_store, sink, mailing_list,
                                               subscription) -> None:
        settings_store.error = SettingsStoreError("mongo down")
        mailer = SubscriptionMailer(field_store, settings_store, TemplateResolver(), sink)
        with pytest.raises(SettingsStoreError):
            _run(mailer.send_subscription_confirmed(mailing_list, "ann@example.org", subscription))


class TestCelerySink:
    @pytest.fixture
    def message(self):
        envelope = MailEnvelope(sender=MailAddress(address="news@example.org"),
                                to=MailAddress(address="ann@example.org"), subject="Hi")
        return envelope, MailContent(html="<p>hi</p>", text="hi")

    def test_queues_serialized_message(self, message) -> None:
        with patch("tasks.subscription_mail.deliver_subscription_mail") as task:
            _run(CeleryMailSink(queue="mail").send(*message))

        kwargs = task.apply_async.call_args.kwargs
        assert kwargs["queue"] == "mail"
        envelope, content = kwargs["args"]
        assert envelope["from"]["address"] == "news@example.org"
        assert content["text"] == "hi"

    def test_broker_error_becomes_delivery_error(self, message) -> None:
        with patch("tasks.subscription_mail.deliver_subscription_mail") as task:
            task.apply_async.side_effect = OperationalError("no broker")
            with pytest.raises(DeliveryError):
                _run(CeleryMailSink().send(*message))
