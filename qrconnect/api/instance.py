"""
Instance Proxy Endpoints
Forwards /api/instance/* to the Evolution gateway, turning the caller's
bearer token into the upstream apikey header. Upstream status codes pass
through unchanged; local failures answer 500 with {"error": ...}.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from qrconnect.evolution_api import EvolutionAPIClient
from qrconnect.utils.logging_config import mask_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/instance", tags=["instance"])
security = HTTPBearer(auto_error=False)


class CreateInstanceRequest(BaseModel):
    """Instance creation request"""
    name: str = Field(..., min_length=1)


def get_evolution_client(request: Request) -> EvolutionAPIClient:
    """Shared gateway client stored on app.state by the lifespan handler"""
    client = getattr(request.app.state, "evolution_client", None)
    if client is None:
        client = EvolutionAPIClient()
        request.app.state.evolution_client = client
    return client


def get_instance_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Bearer credential from the Authorization header, empty when absent"""
    if not credentials:
        return ""
    return credentials.credentials


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


NO_BODY_STATUSES = {204, 304}


def _relay(status: int, data: Any) -> Response:
    """Upstream status and body; statuses that forbid a body get none"""
    if status in NO_BODY_STATUSES:
        return Response(status_code=status)
    return JSONResponse(status_code=status, content=data)


def _preview(data: Any, limit: int = 200) -> str:
    return json.dumps(data, default=str)[:limit]


@router.post("/create")
async def create_instance(
    payload: CreateInstanceRequest,
    client: EvolutionAPIClient = Depends(get_evolution_client),
):
    """Create an instance with the master key and hand its token back"""
    try:
        logger.info(f"[create] name={payload.name}")
        status, data, token = await client.create_instance(payload.name)
        logger.info(f"[create] response: {status} {_preview(data)}")
        content = dict(data) if isinstance(data, dict) else {"response": data}
        content["token"] = token
        return JSONResponse(status_code=status, content=content)
    except Exception as e:
        logger.error(f"[create] {e}")
        return _error("Failed to create instance")


@router.get("/status")
async def get_status(
    token: str = Depends(get_instance_token),
    client: EvolutionAPIClient = Depends(get_evolution_client),
):
    try:
        status, data = await client.get_status(token)
        return _relay(status, data)
    except Exception as e:
        logger.error(f"[status] {e}")
        return _error("Failed to get status")


@router.get("/qr")
async def get_qr(
    token: str = Depends(get_instance_token),
    client: EvolutionAPIClient = Depends(get_evolution_client),
):
    try:
        status, data = await client.get_qr(token)
        logger.info(f"[qr] response: {status} {_preview(data)}")
        return _relay(status, data)
    except Exception as e:
        logger.error(f"[qr] {e}")
        return _error("Failed to get QR code")


@router.post("/pair")
async def pair_instance(
    body: Optional[Dict[str, Any]] = Body(None),
    token: str = Depends(get_instance_token),
    client: EvolutionAPIClient = Depends(get_evolution_client),
):
    """Request a pairing code; the request body is forwarded as-is"""
    try:
        phone = (body or {}).get("phone")
        logger.info(f"[pair] phone={mask_phone(str(phone or ''))}")
        status, data = await client.pair(token, body)
        logger.info(f"[pair] response: {status} {_preview(data)}")
        return _relay(status, data)
    except Exception as e:
        logger.error(f"[pair] {e}")
        return _error("Failed to pair instance")


@router.post("/disconnect")
async def disconnect_instance(
    token: str = Depends(get_instance_token),
    client: EvolutionAPIClient = Depends(get_evolution_client),
):
    try:
        status, data = await client.disconnect(token)
        return _relay(status, data)
    except Exception as e:
        logger.error(f"[disconnect] {e}")
        return _error("Failed to disconnect instance")


@router.delete("/logout")
async def logout_instance(
    token: str = Depends(get_instance_token),
    client: EvolutionAPIClient = Depends(get_evolution_client),
):
    try:
        status, data = await client.logout(token)
        return _relay(status, data)
    except Exception as e:
        logger.error(f"[logout] {e}")
        return _error("Failed to logout instance")
