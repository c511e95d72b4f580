# core/field_types.py
"""
Per-kind behaviour of custom list fields.

Every field kind maps to one FieldType describing how a stored value is
shown in a form, how a submitted form value is stored, and how it is
validated. Grouped fields are folded into the enum shape by
core.grouped_fields before they reach this table, so the grouped kinds
share the enum implementations.
"""
import json
import re
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from core.date_formats import format_birthday, format_date, parse_birthday, parse_date
from core.errors import UnknownFieldTypeError
from models.field_model import FieldDefinition, FieldOption


_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class FieldType:
    """Behaviour shared by all kinds; subclasses override what differs"""

    label = ""
    indexable = True

    def init_display_value(self, field: FieldDefinition) -> Any:
        return ""

    def to_display_value(self, field: FieldDefinition, stored: Any) -> Any:
        return _as_text(stored)

    def to_stored_value(self, field: FieldDefinition, display: Any) -> Any:
        return display

    def validate(self, field: FieldDefinition, display: Any) -> Optional[str]:
        return None


class StringFieldType(FieldType):
    def __init__(self, label: str, long: bool = False):
        self.label = label
        self.long = long

    def to_stored_value(self, field, display):
        # "no value" is always None in storage
        if display is None or display == "":
            return None
        return display


class NumberFieldType(FieldType):
    label = "Number"

    def to_stored_value(self, field, display):
        text = _as_text(display).strip()
        if text == "":
            return None
        if not _INTEGER_PATTERN.match(text):
            raise ValueError(f"{field.key}: {text!r} is not a number")
        return int(text)

    def validate(self, field, display):
        text = _as_text(display).strip()
        if text != "" and not _INTEGER_PATTERN.match(text):
            return "Value must be a number"
        return None


class DateFieldType(FieldType):
    label = "Date"

    def _format(self, field, value):
        return format_date(field.settings.date_format, value)

    def _parse(self, field, text):
        return parse_date(field.settings.date_format, text)

    def to_display_value(self, field, stored):
        if stored is None or stored == "":
            return ""
        return self._format(field, stored)

    def to_stored_value(self, field, display):
        return self._parse(field, _as_text(display))

    def validate(self, field, display):
        text = _as_text(display)
        if text != "" and self._parse(field, text) is None:
            return "Date is invalid"
        return None


class BirthdayFieldType(DateFieldType):
    label = "Birthday"

    def _format(self, field, value):
        return format_birthday(field.settings.date_format, value)

    def _parse(self, field, text):
        return parse_birthday(field.settings.date_format, text)


class JsonFieldType(FieldType):
    label = "JSON value for custom rendering"
    indexable = False

    def to_display_value(self, field, stored):
        if stored is None:
            return ""
        return stored if isinstance(stored, str) else json.dumps(stored)


class EnumSingleFieldType(FieldType):
    """Single choice: explicit value, then default_value, then first option"""

    def __init__(self, label: str):
        self.label = label

    def init_display_value(self, field):
        if field.default_value:
            return field.default_value
        if field.settings.options:
            return field.settings.options[0].key
        return ""

    def to_display_value(self, field, stored):
        if stored is None:
            return self.init_display_value(field)
        return stored


class EnumMultipleFieldType(FieldType):
    """Multiple choice, the value is a set of option keys"""

    indexable = False

    def __init__(self, label: str):
        self.label = label

    def init_display_value(self, field) -> Set[Any]:
        return set()

    def to_display_value(self, field, stored):
        if stored is None:
            return set()
        if isinstance(stored, (str, int)):
            return {stored}
        return set(stored)

    def to_stored_value(self, field, display):
        if display is None:
            return set()
        if isinstance(display, (str, int)):
            return {display}
        return set(display)


class OptionFieldType(FieldType):
    """Child column of a grouped field, holds whether the option is selected"""

    label = "Option"

    def init_display_value(self, field):
        return False

    def to_display_value(self, field, stored):
        return bool(stored)

    def to_stored_value(self, field, display):
        return bool(display)


FIELD_TYPES: Mapping[str, FieldType] = MappingProxyType({
    "text": StringFieldType("Text"),
    "website": StringFieldType("Website"),
    "longtext": StringFieldType("Multi-line text", long=True),
    "gpg": StringFieldType("GPG Public Key", long=True),
    "number": NumberFieldType(),
    "date": DateFieldType(),
    "birthday": BirthdayFieldType(),
    "json": JsonFieldType(),
    "dropdown-enum": EnumSingleFieldType("Drop Down (enum)"),
    "radio-enum": EnumSingleFieldType("Radio Buttons (enum)"),
    "checkbox-grouped": EnumMultipleFieldType("Checkboxes (from option fields)"),
    "radio-grouped": EnumSingleFieldType("Radio Buttons (from option fields)"),
    "dropdown-grouped": EnumSingleFieldType("Drop Down (from option fields)"),
    "option": OptionFieldType(),
})


def get_field_type(kind: str) -> FieldType:
    try:
        return FIELD_TYPES[kind]
    except KeyError:
        raise UnknownFieldTypeError(kind) from None


def get_field_type_labels() -> Dict[str, str]:
    return {kind: field_type.label for kind, field_type in FIELD_TYPES.items()}


# ---------------------------------------------------------------------------
# Enum options are edited as "key|label" lines
# ---------------------------------------------------------------------------

def parse_enum_options(text: str) -> Tuple[List[FieldOption], List[str]]:
    """Parse option lines, returns (options, errors)"""
    options: List[FieldOption] = []
    errors: List[str] = []
    seen = set()

    for line_no, raw_line in enumerate((text or "").splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue

        key, sep, label = line.partition("|")
        key = key.strip()
        label = label.strip()
        if not sep or not key or not label:
            errors.append(f"Line {line_no}: expected key|label")
            continue
        if key in seen:
            errors.append(f"Line {line_no}: duplicate key {key!r}")
            continue

        seen.add(key)
        options.append(FieldOption(key=key, label=label))

    return options, errors


def render_enum_options(options: List[FieldOption]) -> str:
    return "\n".join(f"{option.key}|{option.label}" for option in options)
