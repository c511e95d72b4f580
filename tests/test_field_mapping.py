import pytest

from core.field_mapping import build_merge_tags, get_row, merge_tag_valid, render_merge_value


class TestMergeTagSyntax:
    @pytest.mark.parametrize("key", ["USER_NAME", "A1", "X"])
    def test_accepted(self, key) -> None:
        assert merge_tag_valid(key)

    @pytest.mark.parametrize("key", ["user_name", "1USER", "USER-NAME", "", None, "_USER"])
    def test_rejected(self, key) -> None:
        assert not merge_tag_valid(key)


@pytest.fixture
def color_field(make_field):
    return make_field(5, "COLOR", "dropdown-enum", settings={
        "options": [{"key": "r", "label": "Red"}, {"key": "g", "label": "Green"}],
    })


class TestRenderMergeValue:
    def test_enum_label(self, color_field) -> None:
        assert render_merge_value(color_field, "g") == "Green"

    def test_enum_without_value(self, color_field) -> None:
        assert render_merge_value(color_field, None) == ""

    def test_enum_render_template(self, make_field) -> None:
        field = make_field(5, "COLOR", "radio-enum", settings={
            "options": [{"key": "r", "label": "Red"}],
            "renderTemplate": "{% for v in values %}[{{ v.key }}:{{ v.label }}]{% endfor %}",
        })
        assert render_merge_value(field, "r") == "[r:Red]"

    def test_broken_render_template_falls_back(self, make_field) -> None:
        field = make_field(5, "COLOR", "radio-enum", settings={
            "options": [{"key": "r", "label": "Red"}],
            "renderTemplate": "{% for v in values %}",
        })
        assert render_merge_value(field, "r") == "Red"

    def test_json_serialized(self, make_field) -> None:
        field = make_field(8, "META", "json")
        assert render_merge_value(field, {"a": 1}) == '{"a": 1}'

    def test_number(self, make_field) -> None:
        assert render_merge_value(make_field(2, "AGE", "number"), 42) == "42"


class TestRowsAndTags:
    @pytest.fixture
    def fields(self, make_field):
        return [
            make_field(1, "CITY"),
            make_field(10, "TOPICS", "checkbox-grouped"),
            make_field(11, "TOPIC_SPORT", "option", name="Sport", group=10, order_list=1),
            make_field(12, "TOPIC_TECH", "option", name="Tech", group=10, order_list=2),
        ]

    @pytest.fixture
    def subscription(self):
        return {
            "email": "ann@example.org",
            "cid": "Sx9",
            "first_name": "Ann",
            "custom_city_1": "Oslo",
            "custom_topic_sport_11": True,
            "custom_topic_tech_12": True,
        }

    def test_row_uses_logical_fields(self, fields, subscription) -> None:
        row = get_row(fields, subscription)
        assert [entry["key"] for entry in row] == ["CITY", "TOPICS"]
        assert row[1]["value"] == {11, 12}

    def test_grouped_labels_joined(self, fields, subscription) -> None:
        tags = build_merge_tags(fields, subscription)
        assert tags["TOPICS"] == "Sport, Tech"

    def test_grouped_render_template_sees_labels(self, make_field, fields, subscription) -> None:
        fields[1] = make_field(10, "TOPICS", "checkbox-grouped", settings={"renderTemplate": "{{ values|join(' & ') }}"})
        assert build_merge_tags(fields, subscription)["TOPICS"] == "Sport & Tech"

    def test_fixed_tags(self, fields, subscription) -> None:
        tags = build_merge_tags(fields, subscription)
        assert tags["EMAIL"] == "ann@example.org"
        assert tags["FIRST_NAME"] == "Ann"
        assert tags["LAST_NAME"] == ""
        assert tags["SUBSCRIPTION_ID"] == "Sx9"
        assert tags["CITY"] == "Oslo"
