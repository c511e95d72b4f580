# core/field_mapping.py
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

from core.field_types import get_field_type
from core.grouped_fields import fan_in, group_fields, is_multi_select
from models.field_model import ENUM_KINDS, GROUPED_KINDS, FieldDefinition, get_field_column

logger = logging.getLogger(__name__)

MERGE_TAG_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")

# Merge tags every subscription provides next to its custom fields
FIXED_MERGE_TAGS = {
    "EMAIL": "email",
    "FIRST_NAME": "first_name",
    "LAST_NAME": "last_name",
    "SUBSCRIPTION_ID": "cid",
}

_render_env = SandboxedEnvironment(autoescape=False)


def merge_tag_valid(key: Optional[str]) -> bool:
    """Merge tags are uppercase A-Z, 0-9 and _, starting with a letter"""
    return bool(key) and MERGE_TAG_PATTERN.match(key) is not None


def get_row(fields: Iterable[FieldDefinition], subscription: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Pair each logical field of a list with its value in a subscription.
    Multi-select grouped fields yield the set of selected child ids.
    """
    row = []
    for field in group_fields(fields):
        row.append({
            "field": field,
            "key": field.key,
            "column": get_field_column(field),
            "kind": field.kind,
            "value": fan_in(field, subscription) if field.kind in GROUPED_KINDS
            else subscription.get(get_field_column(field)),
        })
    return row


def _selected_options(field: FieldDefinition, value: Any) -> List[Dict[str, Any]]:
    if value is None or value == "":
        return []
    if is_multi_select(field):
        wanted = {str(key) for key in value}
    else:
        wanted = {str(value)}
    return [
        {"key": option.key, "label": option.label}
        for option in field.settings.options
        if str(option.key) in wanted
    ]


def render_merge_value(field: FieldDefinition, value: Any) -> str:
    """Text a merge tag expands to for the given stored value"""
    if field.kind in ENUM_KINDS or field.kind in GROUPED_KINDS:
        selected = _selected_options(field, value)
        labels = [option["label"] for option in selected]

        if field.settings.render_template:
            # Enum templates see key/label objects, grouped ones see labels
            values = selected if field.kind in ENUM_KINDS else labels
            try:
                return _render_env.from_string(field.settings.render_template).render(values=values)
            except TemplateError as e:
                logger.warning(f"Render template of field {field.key} failed: {e}")

        return ", ".join(labels)

    if field.kind == "json" and value is not None and not isinstance(value, str):
        return json.dumps(value)

    display = get_field_type(field.kind).to_display_value(field, value)
    return "" if display is None else str(display)


def build_merge_tags(fields: Iterable[FieldDefinition], subscription: Mapping[str, Any]) -> Dict[str, str]:
    """Merge tag -> rendered value for a subscription"""
    tags = {tag: str(subscription.get(column) or "") for tag, column in FIXED_MERGE_TAGS.items()}
    for entry in get_row(fields, subscription):
        tags[entry["key"]] = render_merge_value(entry["field"], entry["value"])
    return tags
