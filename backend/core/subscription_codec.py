# core/subscription_codec.py
"""
Whole-record conversion between stored subscriptions and form values.

    to_form_values     stored subscription -> form values (by column)
    to_entity_values   form values -> columns to store
    validate_all       form values -> {merge tag: message}

Field definitions are validated here as well (merge tag syntax and
uniqueness, enum options, group references) together with the field
ordering helpers used by the field editor.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from core.errors import DependencyNotFoundError
from core.field_mapping import merge_tag_valid
from core.field_types import get_field_type, parse_enum_options
from core.grouped_fields import fan_in, fan_out, group_fields
from models.field_model import (
    ENUM_KINDS,
    GROUPED_KINDS,
    ORDER_ATTRIBUTES,
    ORDER_END,
    ORDER_NONE,
    FieldDefinition,
    get_field_column,
)

logger = logging.getLogger(__name__)

# Fixed subscription columns edited on the same form
FORM_COLUMNS = ("email", "first_name", "last_name")

INVALID_MERGE_TAG = "Merge tag is invalid. It must be uppercase, contain only characters A-Z, 0-9, _ and start with a letter."
DUPLICATE_MERGE_TAG = "Another field with the same merge tag exists. Please choose another merge tag."


# ---------------------------------------------------------------------------
# Subscription values
# ---------------------------------------------------------------------------

def to_form_values(fields: Iterable[FieldDefinition], subscription: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Form values for a subscription, or the initial values of a new one"""
    data: Dict[str, Any] = {}

    for column in FORM_COLUMNS:
        value = subscription.get(column) if subscription else None
        data[column] = "" if value is None else value

    for field in group_fields(fields):
        field_type = get_field_type(field.kind)
        column = get_field_column(field)

        if subscription is None:
            data[column] = field_type.init_display_value(field)
            continue

        if field.kind in GROUPED_KINDS:
            stored = fan_in(field, subscription)
        else:
            stored = subscription.get(column)
        data[column] = field_type.to_display_value(field, stored)

    return data


def to_entity_values(fields: Iterable[FieldDefinition], form_values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Columns to store for submitted form values.
    Raises ValueError for values validate_all would have rejected.
    """
    entity: Dict[str, Any] = {}

    for column in FORM_COLUMNS:
        if column in form_values:
            value = form_values[column]
            entity[column] = value if value not in ("", None) else None

    for field in group_fields(fields):
        field_type = get_field_type(field.kind)
        column = get_field_column(field)
        stored = field_type.to_stored_value(field, form_values.get(column))

        if field.kind in GROUPED_KINDS:
            entity.update(fan_out(field, stored))
        else:
            entity[column] = stored

    return entity


def validate_all(fields: Iterable[FieldDefinition], form_values: Mapping[str, Any]) -> Dict[str, str]:
    """Per-field error messages keyed by merge tag, empty when valid"""
    logical = group_fields(fields)
    errors: Dict[str, str] = {}

    key_counts: Dict[str, int] = {}
    for field in logical:
        key_counts[field.key] = key_counts.get(field.key, 0) + 1

    for field in logical:
        if not merge_tag_valid(field.key):
            errors[field.key] = INVALID_MERGE_TAG
            continue
        if key_counts[field.key] > 1:
            errors[field.key] = DUPLICATE_MERGE_TAG
            continue

        message = get_field_type(field.kind).validate(field, form_values.get(get_field_column(field)))
        if message:
            errors[field.key] = message

    return errors


# ---------------------------------------------------------------------------
# Field definitions
# ---------------------------------------------------------------------------

def merge_tag_exists(siblings: Iterable[FieldDefinition], key: str, exclude_id: Optional[int] = None) -> bool:
    return any(field.key == key and field.id != exclude_id for field in siblings)


def validate_field_definition(
    field: FieldDefinition,
    siblings: Sequence[FieldDefinition],
    enum_options_text: Optional[str] = None,
) -> Dict[str, str]:
    """Errors of a field being created or edited, keyed by attribute"""
    errors: Dict[str, str] = {}

    if not field.name or not field.name.strip():
        errors["name"] = "Name must not be empty"

    if not merge_tag_valid(field.key):
        errors["key"] = INVALID_MERGE_TAG
    elif merge_tag_exists(siblings, field.key, exclude_id=field.id):
        errors["key"] = DUPLICATE_MERGE_TAG

    try:
        get_field_type(field.kind)
    except KeyError:
        errors["type"] = f"Unknown field type: {field.kind}"

    if field.kind in ENUM_KINDS and enum_options_text is not None:
        _, option_errors = parse_enum_options(enum_options_text)
        if option_errors:
            errors["enumOptions"] = "; ".join(option_errors)

    if field.group is not None:
        owner = next((s for s in siblings if s.id == field.group), None)
        if owner is None or owner.kind not in GROUPED_KINDS:
            errors["group"] = "Option fields must belong to a grouped field"

    if field.kind in ("number", "date", "birthday") and field.default_value:
        message = get_field_type(field.kind).validate(field, field.default_value)
        if message:
            errors["default_value"] = message

    return errors


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def _visible(fields: Iterable[FieldDefinition], attribute: str, editing_id: Optional[int]) -> List[FieldDefinition]:
    if attribute not in ORDER_ATTRIBUTES:
        raise ValueError(f"Unknown order attribute: {attribute}")
    visible = [
        field for field in fields
        if field.id != editing_id and getattr(field, attribute) is not None
    ]
    return sorted(visible, key=lambda field: (getattr(field, attribute), field.id))


def order_options(fields: Iterable[FieldDefinition], attribute: str, editing_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """Choices for "place before" in the field editor"""
    options: List[Dict[str, Any]] = [{"key": ORDER_NONE, "label": "Not visible"}]
    for field in _visible(fields, attribute, editing_id):
        try:
            type_label = get_field_type(field.kind).label
        except KeyError:
            type_label = field.kind
        options.append({"key": field.id, "label": f"{field.name} ({type_label})"})
    options.append({"key": ORDER_END, "label": "End of list"})
    return options


def compute_order(
    list_id: str,
    fields: Iterable[FieldDefinition],
    attribute: str,
    field_id: int,
    before: Union[int, str],
) -> Dict[int, Optional[int]]:
    """
    New positions for ``attribute`` after placing ``field_id`` before
    ``before`` (a field id, "end" or "none"). Raises DependencyNotFoundError
    when ``before`` names a field that is no longer visible in the list.
    """
    fields = list(fields)
    visible = _visible(fields, attribute, field_id)

    if isinstance(before, str) and before.isdigit():
        before = int(before)

    ordered: List[int] = [field.id for field in visible]
    if before == ORDER_END:
        ordered.append(field_id)
    elif before != ORDER_NONE:
        if before not in ordered:
            raise DependencyNotFoundError(list_id, before, attribute)
        ordered.insert(ordered.index(before), field_id)

    positions: Dict[int, Optional[int]] = {field.id: None for field in fields}
    positions[field_id] = None
    for position, fid in enumerate(ordered, start=1):
        positions[fid] = position
    return positions
