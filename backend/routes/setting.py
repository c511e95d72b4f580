# routes/setting.py
import logging
from typing import Any, Dict, Iterable

from fastapi import APIRouter, HTTPException
from pymongo.errors import PyMongoError

from core.config import settings as app_settings
from core.errors import SettingsStoreError
from database import get_settings_collection
from models.field_model import LIST_SETTING_KEYS, ListSettings

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


class SettingsStore:
    """Key/value settings, one {"key", "value"} document per setting"""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        return self._collection if self._collection is not None else get_settings_collection()

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Values for ``keys``; keys without a stored value map to None"""
        keys = list(keys)
        try:
            docs = await self.collection.find({"key": {"$in": keys}}, {"_id": 0}).to_list(None)
        except PyMongoError as e:
            logger.error(f"Loading settings {keys} failed: {e}")
            raise SettingsStoreError("Cannot load settings") from e

        values = {key: None for key in keys}
        for doc in docs:
            values[doc["key"]] = doc.get("value")

        # serviceUrl falls back to the deployment's configured url
        if "serviceUrl" in values and not values["serviceUrl"]:
            values["serviceUrl"] = app_settings.SERVICE_URL
        return values

    async def get_list_settings(self) -> ListSettings:
        return ListSettings.from_store(await self.get(LIST_SETTING_KEYS))


settings_store = SettingsStore()


@router.get("/settings/list-defaults")
async def get_list_defaults():
    """Settings used by subscription notifications"""
    try:
        list_settings = await settings_store.get_list_settings()
    except SettingsStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return list_settings.model_dump(by_alias=True)
