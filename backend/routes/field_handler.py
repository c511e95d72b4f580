# routes/field_handler.py
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from core.errors import FieldStoreError
from database import get_fields_collection
from models.field_model import FieldDefinition

logger = logging.getLogger(__name__)


def _list_order(field: FieldDefinition):
    return (field.order_list is None, field.order_list or 0, field.id)


class FieldStore:
    """Field definitions of a list, read from the fields collection"""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        return self._collection if self._collection is not None else get_fields_collection()

    async def list_fields(self, list_id: str) -> List[FieldDefinition]:
        """All field definitions of a list in listing order"""
        try:
            docs = await self.collection.find({"list_id": list_id}, {"_id": 0}).to_list(None)
        except PyMongoError as e:
            logger.error(f"Loading fields of list {list_id} failed: {e}")
            raise FieldStoreError(f"Cannot load fields of list {list_id}") from e

        try:
            fields = [FieldDefinition.model_validate(doc) for doc in docs]
        except ValidationError as e:
            logger.error(f"Malformed field definition in list {list_id}: {e}")
            raise FieldStoreError(f"Malformed field definition in list {list_id}") from e

        return sorted(fields, key=_list_order)

    async def get_field(self, list_id: str, field_id: int) -> Optional[FieldDefinition]:
        try:
            doc = await self.collection.find_one({"list_id": list_id, "id": field_id}, {"_id": 0})
        except PyMongoError as e:
            raise FieldStoreError(f"Cannot load field {field_id} of list {list_id}") from e
        return FieldDefinition.model_validate(doc) if doc else None

    async def save_positions(self, list_id: str, attribute: str, positions: Mapping[int, Optional[int]]) -> int:
        """Write new positions for one order attribute, returns modified count"""
        modified = 0
        try:
            for field_id, position in positions.items():
                result = await self.collection.update_one(
                    {"list_id": list_id, "id": field_id},
                    {"$set": {attribute: position}},
                )
                modified += result.modified_count
        except PyMongoError as e:
            raise FieldStoreError(f"Cannot update {attribute} of list {list_id}") from e

        logger.info(f"Updated {attribute} of {modified} field(s) in list {list_id}")
        return modified


def serialize_field(field: FieldDefinition) -> Dict[str, Any]:
    return field.model_dump(by_alias=True)


field_store = FieldStore()
