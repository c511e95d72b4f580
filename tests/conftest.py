import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("MOCK_EMAIL_SENDING", "true")

from core.errors import DeliveryError  # noqa: E402
from models.field_model import LIST_SETTING_KEYS, FieldDefinition, ListInfo, ListSettings  # noqa: E402


def _field(id, key, kind="text", name=None, **extra) -> FieldDefinition:
    data = {"id": id, "list_id": "list-1", "key": key, "name": name or key.title(), "type": kind}
    data.update(extra)
    return FieldDefinition.model_validate(data)


@pytest.fixture
def make_field():
    return _field


@pytest.fixture
def mailing_list() -> ListInfo:
    return ListInfo(id="list-1", cid="Lc1d", name="Weekly News")


class FakeFieldStore:
    def __init__(self, fields=None, error=None):
        self.fields = list(fields or [])
        self.error = error
        self.saved = []

    async def list_fields(self, list_id):
        if self.error:
            raise self.error
        return [field for field in self.fields if field.list_id == list_id]

    async def get_field(self, list_id, field_id):
        return next((f for f in await self.list_fields(list_id) if f.id == field_id), None)

    async def save_positions(self, list_id, attribute, positions):
        self.saved.append((list_id, attribute, dict(positions)))
        return len(positions)


class FakeSettingsStore:
    def __init__(self, values=None, error=None):
        self.values = dict(values or {})
        self.error = error

    async def get(self, keys):
        if self.error:
            raise self.error
        return {key: self.values.get(key) for key in keys}

    async def get_list_settings(self):
        return ListSettings.from_store(await self.get(LIST_SETTING_KEYS))


class RecordingSink:
    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    async def send(self, envelope, content):
        if self.fail:
            raise DeliveryError("relay refused the message")
        self.messages.append((envelope, content))


@pytest.fixture
def field_store():
    return FakeFieldStore()


@pytest.fixture
def settings_store():
    return FakeSettingsStore({
        "serviceUrl": "https://lists.example.org/",
        "defaultFrom": "Weekly News Team",
        "defaultAddress": "news@example.org",
        "defaultPostaddress": "1 Main Street",
        "defaultHomepage": "https://example.org",
    })


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def client(monkeypatch, field_store, settings_store) -> TestClient:
    from routes import field_handler, setting

    monkeypatch.setattr(field_handler, "field_store", field_store)
    monkeypatch.setattr(setting, "settings_store", settings_store)

    from main import app

    # No context manager: the startup hook would try to reach MongoDB
    return TestClient(app)
