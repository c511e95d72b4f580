# core/grouped_fields.py
"""
Folding of grouped fields into the enum shape.

A grouped field is stored as one composite definition plus one "option"
definition per choice (``group`` = composite id). Before any per-kind
handling the composite is replaced by a GroupedField whose
``settings.options`` lists the children, so grouped and plain enum fields
go through the same code.

Storage layout:
    checkbox-grouped          one boolean column per child
    radio/dropdown-grouped    selected child id in the composite's column
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from models.field_model import (
    GROUPED_KINDS,
    MULTI_SELECT_KINDS,
    FieldDefinition,
    FieldOption,
    GroupedField,
    get_field_column,
)

logger = logging.getLogger(__name__)


def _display_order(field: FieldDefinition):
    return (field.order_list is None, field.order_list or 0, field.id)


def is_multi_select(field: FieldDefinition) -> bool:
    return field.kind in MULTI_SELECT_KINDS


def build_grouped_view(composite: FieldDefinition, children: Iterable[FieldDefinition]) -> GroupedField:
    """Merge a composite field and its option children into one logical field"""
    own_children = sorted(
        (child for child in children if child.group == composite.id),
        key=_display_order,
    )

    settings = composite.settings.model_copy(update={
        "options": [FieldOption(key=child.id, label=child.name) for child in own_children]
    })

    data = composite.model_dump(exclude={"settings"})
    data.pop("children", None)
    return GroupedField(**data, settings=settings, children=own_children)


def group_fields(fields: Iterable[FieldDefinition]) -> List[FieldDefinition]:
    """Turn the raw field list of a list into its logical fields, order kept"""
    fields = list(fields)
    composite_ids = {field.id for field in fields if field.kind in GROUPED_KINDS}

    children_by_group: Dict[int, List[FieldDefinition]] = {}
    for field in fields:
        if field.group is None:
            continue
        if field.group not in composite_ids:
            logger.warning(f"Field {field.id} ({field.key}) references missing group {field.group}")
            continue
        children_by_group.setdefault(field.group, []).append(field)

    logical: List[FieldDefinition] = []
    for field in fields:
        if field.group is not None:
            continue
        if isinstance(field, GroupedField):
            logical.append(field)
        elif field.kind in GROUPED_KINDS:
            logical.append(build_grouped_view(field, children_by_group.get(field.id, [])))
        else:
            logical.append(field)

    return logical


def fan_out(grouped: GroupedField, selected: Optional[Iterable[Any]]) -> Dict[str, Any]:
    """Logical value -> physical columns"""
    if not is_multi_select(grouped):
        return {get_field_column(grouped): selected}

    # Form submissions may carry the ids as strings
    selected_keys = {str(key) for key in (selected or ())}
    return {
        get_field_column(child): str(child.id) in selected_keys
        for child in grouped.children
    }


def fan_in(grouped: GroupedField, record: Mapping[str, Any]) -> Any:
    """Physical columns -> logical value"""
    if not is_multi_select(grouped):
        return record.get(get_field_column(grouped))

    selected: Set[int] = set()
    for child in grouped.children:
        if record.get(get_field_column(child)):
            selected.add(child.id)
    return selected
