"""FastAPI routes for the hive coordinator.

GET  /hive/status          — fleet health report
GET  /hive/nodes/{node_id} — one node's state
POST /hive/nodes           — register a node
POST /hive/leave           — remove a node
POST /hive/broadcast       — dispatch a command to the fleet
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from hive.errors import DuplicateNodeError, InvalidCommandError, UnknownNodeError
from hive.fleet.controller import HiveController
from hive.fleet.models import (
    BroadcastRequest,
    BroadcastResponse,
    LeaveRequest,
    LeaveResponse,
    NodeReport,
    RegisterRequest,
    StatusReport,
)
from hive.fleet.types import Command

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hive", tags=["hive"])


def _get_controller(request: Request) -> HiveController:
    """Extract the HiveController from app state."""
    controller = getattr(request.app.state, "hive", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Hive controller not running")
    return controller


def _verify_or_401(controller: HiveController, token: str) -> None:
    if not controller.verify_token(token):
        raise HTTPException(status_code=401, detail="Invalid hive token")


# ---------------------------------------------------------------------------
# Read-only
# ---------------------------------------------------------------------------

@router.get("/status", response_model=StatusReport)
async def hive_status(request: Request):
    """Fleet health: every node plus an aggregate healthy flag."""
    return _get_controller(request).status()


@router.get("/nodes/{node_id}", response_model=NodeReport)
async def hive_node(node_id: str, request: Request):
    controller = _get_controller(request)
    try:
        node = controller.registry.get(node_id)
    except UnknownNodeError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return NodeReport.from_snapshot(node)


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

@router.post("/nodes", response_model=NodeReport, status_code=201)
async def hive_register(body: RegisterRequest, request: Request):
    """Register a new node. 409 if the id is taken."""
    controller = _get_controller(request)
    _verify_or_401(controller, body.hive_token)
    try:
        node = controller.register(body.node)
    except DuplicateNodeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return NodeReport.from_snapshot(node)


@router.post("/leave", response_model=LeaveResponse)
async def hive_leave(body: LeaveRequest, request: Request):
    controller = _get_controller(request)
    _verify_or_401(controller, body.hive_token)
    return LeaveResponse(ok=controller.remove(body.node_id))


# ---------------------------------------------------------------------------
# POST /hive/broadcast
# ---------------------------------------------------------------------------

@router.post("/broadcast", response_model=BroadcastResponse)
async def hive_broadcast(body: BroadcastRequest, request: Request):
    """Dispatch a command. Per-node failures are reported in the body, not as errors."""
    controller = _get_controller(request)
    _verify_or_401(controller, body.hive_token)

    command = Command(kind=body.kind, target=body.target, payload=body.payload)
    try:
        result = await controller.broadcast(command, timeout_s=body.timeout_s)
    except InvalidCommandError as exc:
        raise HTTPException(status_code=400, detail={"code": exc.code, "message": str(exc)})
    except UnknownNodeError as exc:
        raise HTTPException(status_code=404, detail={"code": exc.code, "message": str(exc)})

    return BroadcastResponse.from_result(result)
