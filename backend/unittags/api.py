"""Unit alias REST API endpoints.

REST Endpoints:
- GET    /aliases/units/{unit_id}   - Resolve a unit alias under the current mode
- PUT    /aliases/units/{unit_id}   - Operator override (front of the rule list)
- GET    /aliases/learned           - Learned OTA aliases, newest first
- GET    /aliases/mode              - Current resolution mode
- PUT    /aliases/mode              - Change resolution mode
- GET    /aliases/stats             - Store counters
- POST   /aliases/ota               - Decode raw alias fragments and ingest the result
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from unittags.decoders import MAX_FRAGMENTS, decode_motorola_alias, decode_motorola_alias_p2
from unittags.errors import ConfigError
from unittags.models import ResolutionMode
from unittags.store import MANUAL_SOURCE, UnitTagStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/aliases", tags=["aliases"])


# ============================================================================
# Pydantic Models for API
# ============================================================================

class UnitAliasRequest(BaseModel):
    """Request to assert an alias for one unit."""
    alias: str = Field(..., min_length=1, max_length=200, description="Alias text")
    source: str = Field(MANUAL_SOURCE, max_length=50, description="Who asserted the alias")


class UnitAliasResponse(BaseModel):
    unitId: int
    alias: str
    mode: str


class UnitAliasUpdateResponse(BaseModel):
    unitId: int
    alias: str
    changed: bool


class ModeRequest(BaseModel):
    mode: str = Field(..., description="none, user_only, user_first or ota_first")


class ModeResponse(BaseModel):
    mode: str


class OtaFragmentsRequest(BaseModel):
    """Raw fragment buffers for one alias announcement."""
    phase: Literal[1, 2] = Field(1, description="1 = FDMA (TSBK), 2 = TDMA (MAC)")
    fragments: list[str] = Field(
        ..., max_length=MAX_FRAGMENTS, description="Fragment payloads as hex strings"
    )


class OtaDecodeResponse(BaseModel):
    success: bool
    radioId: int
    alias: str
    source: str
    wacn: str
    sys: str
    talkgroupId: int
    changed: bool


# ============================================================================
# Helper Functions
# ============================================================================

def get_tag_store(request: Request) -> UnitTagStore:
    """Get the UnitTagStore from app state."""
    store = getattr(request.app.state, "tag_store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="UnitTagStore not initialized")
    return store


def _parse_fragments(fragments: list[str]) -> list[bytes]:
    buffers: list[bytes] = []
    for index, text in enumerate(fragments):
        try:
            buffers.append(bytes.fromhex(text.replace(" ", "")))
        except ValueError:
            logger.debug(f"Rejected OTA fragment {index}: {text!r}")
            raise HTTPException(status_code=400, detail=f"Fragment {index} is not valid hex")
    return buffers


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/units/{unit_id}", response_model=UnitAliasResponse)
def get_unit_alias(unit_id: int, request: Request) -> UnitAliasResponse:
    store = get_tag_store(request)
    return UnitAliasResponse(
        unitId=unit_id,
        alias=store.find_unit_tag(unit_id),
        mode=store.get_mode().value,
    )


@router.put("/units/{unit_id}", response_model=UnitAliasUpdateResponse)
def put_unit_alias(unit_id: int, req: UnitAliasRequest, request: Request) -> UnitAliasUpdateResponse:
    store = get_tag_store(request)
    changed = store.add_front(unit_id, req.alias, req.source)
    return UnitAliasUpdateResponse(unitId=unit_id, alias=req.alias, changed=changed)


@router.get("/learned")
def list_learned_aliases(request: Request) -> list[dict[str, Any]]:
    store = get_tag_store(request)
    return [entry.to_dict() for entry in store.learned_aliases()]


@router.get("/mode", response_model=ModeResponse)
def get_mode(request: Request) -> ModeResponse:
    return ModeResponse(mode=get_tag_store(request).get_mode().value)


@router.put("/mode", response_model=ModeResponse)
def set_mode(req: ModeRequest, request: Request) -> ModeResponse:
    store = get_tag_store(request)
    try:
        mode = ResolutionMode.parse(req.mode)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.set_mode(mode)
    return ModeResponse(mode=mode.value)


@router.get("/stats")
def get_stats(request: Request) -> dict[str, Any]:
    return get_tag_store(request).stats()


@router.post("/ota", response_model=OtaDecodeResponse)
def ingest_ota_fragments(req: OtaFragmentsRequest, request: Request) -> OtaDecodeResponse:
    store = get_tag_store(request)
    buffers = _parse_fragments(req.fragments)
    decode = decode_motorola_alias if req.phase == 1 else decode_motorola_alias_p2
    result = decode(buffers, len(buffers))
    changed = store.add_ota(result)
    return OtaDecodeResponse(
        success=result.success,
        radioId=result.radio_id,
        alias=result.alias,
        source=result.source,
        wacn=result.wacn,
        sys=result.sys,
        talkgroupId=result.talkgroup_id,
        changed=changed,
    )
