# backend/routes/fields.py
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from core.errors import DependencyNotFoundError, FieldStoreError
from core.field_types import get_field_type_labels
from core.subscription_codec import order_options, validate_all, validate_field_definition
from models.field_model import (
    ORDER_ATTRIBUTES,
    FieldDefinitionValidationRequest,
    FieldOrderRequest,
    FieldValidationRequest,
    SubscriptionValidationRequest,
)
from routes import field_handler
from routes.field_validator import check_merge_tag, update_field_order

logger = logging.getLogger(__name__)
router = APIRouter(tags=["fields"])


@router.get("/fields/types")
async def list_field_types():
    return get_field_type_labels()


@router.get("/fields/{list_id}")
async def list_fields(list_id: str):
    try:
        fields = await field_handler.field_store.list_fields(list_id)
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return [field_handler.serialize_field(field) for field in fields]


@router.post("/fields-validate/{list_id}")
async def validate_merge_tag(list_id: str, payload: FieldValidationRequest):
    """Whether another field of the list already uses the merge tag"""
    try:
        return await check_merge_tag(list_id, payload.key, exclude_id=payload.id)
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/fields/{list_id}/validate")
async def validate_definition(list_id: str, payload: FieldDefinitionValidationRequest):
    try:
        siblings = await field_handler.field_store.list_fields(list_id)
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"errors": validate_field_definition(payload.field, siblings, payload.enum_options)}


@router.get("/fields/{list_id}/order-options")
async def get_order_options(
    list_id: str,
    attribute: str = Query("order_list"),
    editing_id: Optional[int] = Query(None),
):
    if attribute not in ORDER_ATTRIBUTES:
        raise HTTPException(status_code=400, detail=f"Unknown order attribute: {attribute}")
    try:
        fields = await field_handler.field_store.list_fields(list_id)
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return order_options(fields, attribute, editing_id)


@router.get("/fields/{list_id}/{field_id}")
async def get_field(list_id: str, field_id: int):
    try:
        field = await field_handler.field_store.get_field(list_id, field_id)
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if field is None:
        raise HTTPException(status_code=404, detail="Field not found")
    return field_handler.serialize_field(field)


@router.put("/fields/{list_id}/{field_id}/order")
async def set_field_order(list_id: str, field_id: int, payload: FieldOrderRequest):
    placements = payload.as_mapping()
    if not placements:
        raise HTTPException(status_code=400, detail="No placement given")

    try:
        positions = await update_field_order(list_id, field_id, placements)
    except DependencyNotFoundError as e:
        # The editor reloads its choices when it sees this type
        return JSONResponse(status_code=409, content=e.to_dict())
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {attribute: {str(fid): pos for fid, pos in values.items()} for attribute, values in positions.items()}


@router.post("/subscriptions/{list_id}/validate")
async def validate_subscription(list_id: str, payload: SubscriptionValidationRequest):
    """Per-field errors of a subscription form submission"""
    try:
        fields = await field_handler.field_store.list_fields(list_id)
    except FieldStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"errors": validate_all(fields, payload.values)}
