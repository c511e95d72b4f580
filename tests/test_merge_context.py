from core.merge_context import build_merge_context, get_encryption_keys, get_recipient_name, resolve_url
from models.field_model import ListSettings


class TestResolveUrl:
    def test_relative_to_service_root(self) -> None:
        assert resolve_url("https://lists.example.org/", "/subscription/confirm/abc") == \
            "https://lists.example.org/subscription/confirm/abc"

    def test_absolute_path_replaces_base_path(self) -> None:
        assert resolve_url("https://example.org/mail/", "/subscription/x") == "https://example.org/subscription/x"

    def test_relative_path_keeps_base_path(self) -> None:
        assert resolve_url("https://example.org/mail/", "subscription/x") == "https://example.org/mail/subscription/x"

    def test_scheme_relative_reference(self) -> None:
        assert resolve_url("https://a.org/x/", "//cdn.b.org/y") == "https://cdn.b.org/y"

    def test_empty_base(self) -> None:
        assert resolve_url("", "/subscription/x") == "/subscription/x"


class TestRecipient:
    def test_full_name(self) -> None:
        assert get_recipient_name({"first_name": "Ann", "last_name": "Lee"}) == "Ann Lee"

    def test_missing_parts_skipped(self) -> None:
        assert get_recipient_name({"first_name": "", "last_name": "Lee"}) == "Lee"
        assert get_recipient_name({}) == ""

    def test_encryption_keys(self, make_field) -> None:
        fields = [make_field(1, "KEY_A", "gpg"), make_field(2, "KEY_B", "gpg"), make_field(3, "NOTE")]
        subscription = {"custom_key_a_1": "  KEYDATA  ", "custom_key_b_2": "", "custom_note_3": "not a key"}
        assert get_encryption_keys(fields, subscription) == ["KEYDATA"]


class TestBuildContext:
    def test_context(self, make_field, mailing_list) -> None:
        list_settings = ListSettings.from_store({
            "serviceUrl": "https://lists.example.org/",
            "defaultAddress": "news@example.org",
            "defaultPostaddress": None,
        })
        context = build_merge_context(
            mailing_list,
            list_settings,
            {"confirmUrl": "/subscription/confirm/abc"},
            {"email": "ann@example.org", "first_name": "Ann", "custom_city_1": "Oslo"},
            [make_field(1, "CITY")],
        )

        assert context.data["title"] == "Weekly News"
        # No homepage configured, the service url stands in
        assert context.data["homepage"] == "https://lists.example.org/"
        assert context.data["contactAddress"] == "news@example.org"
        assert context.data["defaultPostaddress"] == ""
        assert context.data["confirmUrl"] == "https://lists.example.org/subscription/confirm/abc"
        assert context.data["tags"]["CITY"] == "Oslo"
        assert context.recipient_name == "Ann"
        assert context.encryption_keys == []
