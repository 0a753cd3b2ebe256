"""
Block editor routes: the field editing surface over one block at a time.

Every editing endpoint loads the whole definition, applies one operation,
and saves the whole definition back. Sub-fields are addressed with ?parent=.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from blockapi.config import settings
from blockapi.models.block import (
    AddFieldRequest,
    ChangeControlRequest,
    ChangeSettingsRequest,
    CreateBlockRequest,
    MutationResponse,
    RenderRequest,
    RenderResponse,
    ReorderRequest,
)
from blockengine.kernel.assembly import (
    BlockAlreadyExists,
    BlockAssembly,
    BlockNotFound,
    BlockStorage,
    JsonDirectoryStorage,
    MemoryStorage,
)
from blockengine.kernel.controls import list_controls
from blockengine.kernel.document import MalformedDefinition
from blockengine.kernel.fields import get_field, get_fields_for_location
from blockengine.kernel.operations import make_operation
from blockengine.kernel.renderer import TemplateLoader
from blockengine.kernel.types import DEFAULT_LOCATION, FieldRef, MutationResult, Operation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["blocks"])


def _build_assembly() -> BlockAssembly:
    storage: BlockStorage
    if settings.BLOCKS_STORAGE_DIR:
        storage = JsonDirectoryStorage(settings.BLOCKS_STORAGE_DIR)
    else:
        storage = MemoryStorage()
    return BlockAssembly(storage, TemplateLoader(settings.BLOCKS_TEMPLATE_PATHS))


_assembly = _build_assembly()


def get_assembly() -> BlockAssembly:
    """The process-wide assembly. Tests override this dependency."""
    return _assembly


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_BY_CODE = {
    "FIELD_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DUPLICATE_NAME": status.HTTP_409_CONFLICT,
}


def _raise_for(result: MutationResult) -> None:
    if result.applied:
        return
    code = result.error_code or ""
    raise HTTPException(
        status_code=_STATUS_BY_CODE.get(code, status.HTTP_422_UNPROCESSABLE_ENTITY),
        detail=result.error,
    )


def _load(assembly: BlockAssembly, block: str) -> dict[str, Any]:
    try:
        return assembly.load(block)
    except BlockNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Block not found.") from None
    except MalformedDefinition:
        logger.exception("blocks: stored definition for %s is malformed", block)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stored block definition is malformed.",
        ) from None


def _apply(assembly: BlockAssembly, block: str, operation: Operation) -> MutationResponse:
    _load(assembly, block)
    result = assembly.apply(block, operation)
    _raise_for(result)
    return MutationResponse.from_result(result)


# ---------------------------------------------------------------------------
# Controls
# ---------------------------------------------------------------------------


class ControlResponse(BaseModel):
    name: str
    label: str
    type: str
    settings: list[dict[str, Any]]


@router.get("/controls", status_code=200)
def get_controls() -> list[ControlResponse]:
    """Every control a field can use, with its settings schema."""
    return [ControlResponse(**c.to_dict()) for c in list_controls()]


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


@router.get("/blocks", status_code=200)
def list_blocks(assembly: BlockAssembly = Depends(get_assembly)) -> list[str]:
    return assembly.names()


@router.post("/blocks", status_code=201)
def create_block(req: CreateBlockRequest, assembly: BlockAssembly = Depends(get_assembly)) -> dict[str, Any]:
    """Create an empty block."""
    try:
        return assembly.create(req.name, req.title)
    except BlockAlreadyExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Block already exists.") from None
    except MalformedDefinition as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from None


@router.get("/blocks/{block}", status_code=200)
def get_block(block: str, assembly: BlockAssembly = Depends(get_assembly)) -> dict[str, Any]:
    return _load(assembly, block)


@router.put("/blocks/{block}", status_code=200)
def replace_block(
    block: str,
    definition: dict[str, Any],
    assembly: BlockAssembly = Depends(get_assembly),
) -> dict[str, Any]:
    """Full re-save of a definition. Validated as a whole; nothing partial is stored."""
    if definition.get("name") != block:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Definition name does not match the URL.",
        )
    try:
        return assembly.save(definition)
    except MalformedDefinition as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "errors": e.errors},
        ) from None


@router.delete("/blocks/{block}", status_code=204)
def delete_block(block: str, assembly: BlockAssembly = Depends(get_assembly)) -> None:
    try:
        assembly.delete(block)
    except BlockNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Block not found.") from None


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


@router.get("/blocks/{block}/fields", status_code=200)
def list_fields(
    block: str,
    location: str = DEFAULT_LOCATION,
    parent: str | None = None,
    assembly: BlockAssembly = Depends(get_assembly),
) -> list[dict[str, Any]]:
    """Fields at a location (and parent scope), in order."""
    return get_fields_for_location(_load(assembly, block), location, parent)


@router.get("/blocks/{block}/fields/{name}", status_code=200)
def get_block_field(
    block: str,
    name: str,
    parent: str | None = None,
    assembly: BlockAssembly = Depends(get_assembly),
) -> dict[str, Any]:
    field = get_field(_load(assembly, block), FieldRef(name, parent))
    if not field:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Field not found.")
    return field


@router.post("/blocks/{block}/fields", status_code=201)
def add_block_field(
    block: str,
    req: AddFieldRequest,
    assembly: BlockAssembly = Depends(get_assembly),
) -> MutationResponse:
    """Append a new field; the response names it."""
    return _apply(assembly, block, make_operation("field.add", req.model_dump()))


@router.patch("/blocks/{block}/fields/{name}", status_code=200)
def change_block_field_settings(
    block: str,
    name: str,
    req: ChangeSettingsRequest,
    parent: str | None = Query(default=None),
    assembly: BlockAssembly = Depends(get_assembly),
) -> MutationResponse:
    op = make_operation("field.update", {"ref": FieldRef(name, parent), "settings": req.settings})
    return _apply(assembly, block, op)


@router.put("/blocks/{block}/fields/{name}/control", status_code=200)
def change_block_field_control(
    block: str,
    name: str,
    req: ChangeControlRequest,
    parent: str | None = Query(default=None),
    assembly: BlockAssembly = Depends(get_assembly),
) -> MutationResponse:
    op = make_operation("field.change_control", {"ref": FieldRef(name, parent), "control": req.control})
    return _apply(assembly, block, op)


@router.post("/blocks/{block}/fields/{name}/duplicate", status_code=201)
def duplicate_block_field(
    block: str,
    name: str,
    parent: str | None = Query(default=None),
    assembly: BlockAssembly = Depends(get_assembly),
) -> MutationResponse:
    return _apply(assembly, block, make_operation("field.duplicate", {"ref": FieldRef(name, parent)}))


@router.delete("/blocks/{block}/fields/{name}", status_code=200)
def delete_block_field(
    block: str,
    name: str,
    parent: str | None = Query(default=None),
    assembly: BlockAssembly = Depends(get_assembly),
) -> MutationResponse:
    return _apply(assembly, block, make_operation("field.remove", {"ref": FieldRef(name, parent)}))


@router.post("/blocks/{block}/reorder", status_code=200)
def reorder_block_fields(
    block: str,
    req: ReorderRequest,
    assembly: BlockAssembly = Depends(get_assembly),
) -> MutationResponse:
    """Swap two positions within one location."""
    return _apply(assembly, block, make_operation("fields.reorder", req.model_dump()))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


@router.post("/blocks/{block}/render", status_code=200)
def render_block_instance(
    block: str,
    req: RenderRequest,
    assembly: BlockAssembly = Depends(get_assembly),
) -> RenderResponse:
    """Render one block instance from its attributes and field values."""
    _load(assembly, block)
    html = assembly.render(block, req.attributes, req.values, preview=req.preview)
    return RenderResponse(html=html)
