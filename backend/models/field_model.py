# models/field_model.py
import re
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Kinds whose options come from child field definitions
GROUPED_KINDS = ("checkbox-grouped", "radio-grouped", "dropdown-grouped")
ENUM_KINDS = ("dropdown-enum", "radio-enum")
MULTI_SELECT_KINDS = ("checkbox-grouped",)
# Child option fields of a grouped field carry this kind
OPTION_KIND = "option"

ORDER_ATTRIBUTES = ("order_list", "order_subscribe", "order_manage")
ORDER_END = "end"
ORDER_NONE = "none"

# Columns every subscription document has regardless of custom fields
FIXED_COLUMNS = ("email", "cid", "status", "first_name", "last_name")

LIST_SETTING_KEYS = (
    "defaultHomepage",
    "defaultFrom",
    "defaultAddress",
    "defaultPostaddress",
    "serviceUrl",
    "disableConfirmations",
)


class FieldOption(BaseModel):
    key: Union[str, int]
    label: str

    model_config = ConfigDict(frozen=True)


class FieldSettings(BaseModel):
    date_format: Optional[str] = Field(default=None, alias="dateFormat")
    options: List[FieldOption] = Field(default_factory=list)
    render_template: Optional[str] = Field(default=None, alias="renderTemplate")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("date_format")
    @classmethod
    def check_date_format(cls, v):
        if v is not None and v not in ("us", "eur"):
            raise ValueError("dateFormat must be 'us' or 'eur'")
        return v


class FieldDefinition(BaseModel):
    """A user-defined merge field of a list"""
    id: int
    list_id: Optional[str] = None
    key: str
    name: str
    kind: str = Field(alias="type")
    settings: FieldSettings = Field(default_factory=FieldSettings)
    group: Optional[int] = None
    default_value: Optional[str] = None
    column: Optional[str] = None
    order_list: Optional[int] = None
    order_subscribe: Optional[int] = None
    order_manage: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("default_value", mode="before")
    @classmethod
    def blank_default_to_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @property
    def is_grouped(self) -> bool:
        return self.kind in GROUPED_KINDS

    @property
    def is_option(self) -> bool:
        return self.group is not None


class GroupedField(FieldDefinition):
    """Composite field with its child option fields folded into settings.options"""
    children: List[FieldDefinition] = Field(default_factory=list)


class ListInfo(BaseModel):
    id: str
    cid: str
    name: str
    default_form: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ListSettings(BaseModel):
    """Snapshot of the settings a notification needs"""
    default_homepage: Optional[str] = Field(default=None, alias="defaultHomepage")
    default_from: Optional[str] = Field(default=None, alias="defaultFrom")
    default_address: Optional[str] = Field(default=None, alias="defaultAddress")
    default_postaddress: Optional[str] = Field(default=None, alias="defaultPostaddress")
    service_url: str = Field(default="", alias="serviceUrl")
    disable_confirmations: bool = Field(default=False, alias="disableConfirmations")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("service_url", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or ""

    @field_validator("disable_confirmations", mode="before")
    @classmethod
    def coerce_flag(cls, v):
        # Stored settings are strings in older documents
        if isinstance(v, str):
            return v.strip().lower() in ("1", "true", "yes", "on")
        return bool(v)

    @classmethod
    def from_store(cls, items: Dict[str, Any]) -> "ListSettings":
        return cls.model_validate({k: v for k, v in items.items() if v is not None})


class FieldValidationRequest(BaseModel):
    key: str
    id: Optional[int] = None


class FieldOrderRequest(BaseModel):
    order_list_before: Optional[Union[int, str]] = None
    order_subscribe_before: Optional[Union[int, str]] = None
    order_manage_before: Optional[Union[int, str]] = None

    def as_mapping(self) -> Dict[str, Union[int, str]]:
        values = {
            "order_list": self.order_list_before,
            "order_subscribe": self.order_subscribe_before,
            "order_manage": self.order_manage_before,
        }
        return {k: v for k, v in values.items() if v is not None}


class SubscriptionValidationRequest(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)


class FieldDefinitionValidationRequest(BaseModel):
    field: FieldDefinition
    enum_options: Optional[str] = Field(default=None, alias="enumOptions")

    model_config = ConfigDict(populate_by_name=True)


def get_field_column(field: FieldDefinition) -> str:
    """Name of the subscription column backing a field"""
    if field.column:
        return field.column
    slug = re.sub(r"[^a-z0-9_]", "_", field.key.lower())
    return f"custom_{slug}_{field.id}"
