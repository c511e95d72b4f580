# routes/field_validator.py
import logging
from typing import Dict, Optional, Union

from core.errors import DependencyNotFoundError
from core.subscription_codec import compute_order, merge_tag_exists
from routes import field_handler
from routes.field_handler import FieldStore

logger = logging.getLogger(__name__)


async def check_merge_tag(list_id: str, key: str, exclude_id: Optional[int] = None,
                          store: Optional[FieldStore] = None) -> Dict[str, bool]:
    """{"exists": True} when another field of the list already uses the merge tag"""
    store = store or field_handler.field_store
    fields = await store.list_fields(list_id)
    return {"exists": merge_tag_exists(fields, key, exclude_id=exclude_id)}


async def update_field_order(list_id: str, field_id: int, placements: Dict[str, Union[int, str]],
                             store: Optional[FieldStore] = None) -> Dict[str, Dict[int, Optional[int]]]:
    """
    Place a field before another one for each given order attribute.

    All placements are computed before anything is written, so a
    DependencyNotFoundError leaves the stored order untouched.
    """
    store = store or field_handler.field_store
    fields = await store.list_fields(list_id)

    if not any(field.id == field_id for field in fields):
        raise DependencyNotFoundError(list_id, field_id, "id")

    new_positions = {}
    for attribute, before in placements.items():
        try:
            new_positions[attribute] = compute_order(list_id, fields, attribute, field_id, before)
        except DependencyNotFoundError:
            logger.warning(f"Field {before} used for {attribute} in list {list_id} no longer exists")
            raise

    for attribute, positions in new_positions.items():
        await store.save_positions(list_id, attribute, positions)

    return new_positions
