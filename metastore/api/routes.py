"""
API routes for the MetaStore HTTP service.

Exposes the attribute store of every registered entity type:

    GET    /entities                                   registered entity types
    GET    /entities/{entity}?key=k[&value=v]          ids owning an attribute
    GET    /entities/{entity}/{id}/attributes          all attributes
    PUT    /entities/{entity}/{id}/attributes          replace all (sync)
    PATCH  /entities/{entity}/{id}/attributes          set several
    GET    /entities/{entity}/{id}/attributes/{key}    one attribute
    PUT    /entities/{entity}/{id}/attributes/{key}    set one
    DELETE /entities/{entity}/{id}/attributes/{key}    remove one

Binary values are returned base64 encoded; datetimes as ISO 8601.
"""

import base64
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ..store import AttributeRow, AttributeStores

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Attributes"])


# --- Request/Response Models ---


class SetAttributeRequest(BaseModel):
    """Request to set one attribute."""

    value: Any = Field(None, description="Attribute value; its type is inferred")


class AttributesRequest(BaseModel):
    """Request carrying several attributes."""

    attributes: dict[str, Any] = Field(..., description="Attribute names to values")


class AttributeResponse(BaseModel):
    """One attribute."""

    key: str
    type: str
    value: Any = None
    created_at: int
    updated_at: int


class AttributesResponse(BaseModel):
    """All attributes of an entity."""

    entity_type: str
    parent_id: int
    attributes: dict[str, Any]


class RemoveResponse(BaseModel):
    removed: int


class ParentIdsResponse(BaseModel):
    """Entities owning an attribute."""

    entity_type: str
    key: str
    value: str | None = None
    ids: list[int]


# --- Dependencies ---


def get_stores(request: Request) -> AttributeStores:
    """Get the attribute store factory from app state."""
    return request.app.state.stores


def to_json_value(value: Any) -> Any:
    """Make a decoded attribute value JSON friendly."""
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return {k: to_json_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_json_value(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _attribute_response(row: AttributeRow) -> AttributeResponse:
    return AttributeResponse(
        key=row.key,
        type=row.type,
        value=to_json_value(row.decoded()),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _attributes_response(entity_type: str, parent_id: int, attributes: dict[str, Any]) -> AttributesResponse:
    return AttributesResponse(
        entity_type=entity_type,
        parent_id=parent_id,
        attributes={k: to_json_value(v) for k, v in attributes.items()},
    )


# --- Entity Routes ---


@router.get("/entities")
def list_entity_types(stores: AttributeStores = Depends(get_stores)):
    """List registered entity types and their tables."""
    return stores.registry.to_dict()


@router.get("/entities/{entity_type}", response_model=ParentIdsResponse)
def find_entities(
    entity_type: str,
    key: str = Query(..., description="Attribute that must exist"),
    value: str | None = Query(None, description="Exact stored value"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    stores: AttributeStores = Depends(get_stores),
):
    """Ids of entities owning attribute ``key`` (matching ``value`` if given)."""
    ids = stores.find(entity_type, key, value, limit=limit, offset=offset)
    return ParentIdsResponse(entity_type=entity_type, key=key, value=value, ids=ids)


# --- Attribute Routes ---


@router.get("/entities/{entity_type}/{parent_id}/attributes", response_model=AttributesResponse)
def get_attributes(
    entity_type: str,
    parent_id: int,
    stores: AttributeStores = Depends(get_stores),
):
    """All attributes of an entity."""
    store = stores.for_entity(entity_type, parent_id)
    return _attributes_response(entity_type, parent_id, store.all())


@router.put("/entities/{entity_type}/{parent_id}/attributes", response_model=AttributesResponse)
def sync_attributes(
    entity_type: str,
    parent_id: int,
    body: AttributesRequest,
    stores: AttributeStores = Depends(get_stores),
):
    """Replace all attributes of an entity with the given set."""
    store = stores.for_entity(entity_type, parent_id)
    store.sync(body.attributes)
    return _attributes_response(entity_type, parent_id, store.all())


@router.patch("/entities/{entity_type}/{parent_id}/attributes", response_model=AttributesResponse)
def set_attributes(
    entity_type: str,
    parent_id: int,
    body: AttributesRequest,
    stores: AttributeStores = Depends(get_stores),
):
    """Set several attributes, keeping the others."""
    store = stores.for_entity(entity_type, parent_id)
    store.set_many(body.attributes)
    return _attributes_response(entity_type, parent_id, store.all())


@router.get(
    "/entities/{entity_type}/{parent_id}/attributes/{key}",
    response_model=AttributeResponse,
)
def get_attribute(
    entity_type: str,
    parent_id: int,
    key: str,
    stores: AttributeStores = Depends(get_stores),
):
    """One attribute of an entity."""
    row = stores.for_entity(entity_type, parent_id).row(key)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Attribute {key} not found")
    return _attribute_response(row)


@router.put(
    "/entities/{entity_type}/{parent_id}/attributes/{key}",
    response_model=AttributeResponse,
)
def set_attribute(
    entity_type: str,
    parent_id: int,
    key: str,
    body: SetAttributeRequest,
    stores: AttributeStores = Depends(get_stores),
):
    """Set one attribute."""
    row = stores.for_entity(entity_type, parent_id).set(key, body.value)
    return _attribute_response(row)


@router.delete(
    "/entities/{entity_type}/{parent_id}/attributes/{key}",
    response_model=RemoveResponse,
)
def remove_attribute(
    entity_type: str,
    parent_id: int,
    key: str,
    stores: AttributeStores = Depends(get_stores),
):
    """Remove one attribute."""
    removed = stores.for_entity(entity_type, parent_id).remove(key)
    return RemoveResponse(removed=removed)
