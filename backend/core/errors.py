# core/errors.py
"""
Error classes shared by the field and subscription mail code.

Store read failures are fatal and propagate to the caller. Override
failures are swallowed by the template resolver. Delivery failures are
logged by the dispatcher. Ordering against a deleted field is reported as
a structured error so the caller can ask the user to refresh.
"""


class SubscriptionMailError(Exception):
    """Base class for errors raised by this backend"""


class FieldStoreError(SubscriptionMailError):
    """Field definitions could not be read"""


class SettingsStoreError(SubscriptionMailError):
    """List settings could not be read"""


class TemplateOverrideError(SubscriptionMailError):
    """A custom form template is missing or cannot be used"""


class DeliveryError(SubscriptionMailError):
    """The mail sink failed to accept or deliver a message"""


class UnknownFieldTypeError(KeyError):
    """No behaviour registered for a field kind"""

    def __init__(self, kind: str):
        super().__init__(kind)
        self.kind = kind

    def __str__(self):
        return f"Unknown field type: {self.kind!r}"


class DependencyNotFoundError(SubscriptionMailError):
    """An ordering reference points at a field that no longer exists"""

    def __init__(self, list_id: str, field_id, attribute: str):
        super().__init__(
            f"Field {field_id!r} referenced by {attribute} in list {list_id!r} does not exist"
        )
        self.list_id = list_id
        self.field_id = field_id
        self.attribute = attribute

    def to_dict(self) -> dict:
        return {
            "type": "DependencyNotFoundError",
            "list_id": self.list_id,
            "field_id": self.field_id,
            "attribute": self.attribute,
            "message": str(self),
        }
