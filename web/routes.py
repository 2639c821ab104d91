"""
API Routes - JSON API for Collections, Hotspots and Users

All routes require a valid session. Authorization is decided by the core
access gate; this layer only parses input and shapes responses. Core
errors are turned into HTTP responses by the handlers in ``web.app``.

Routes:
- GET    /api/me
- POST   /api/session               - Store a token from the identity provider
- POST   /api/logout
- GET    /api/collections
- POST   /api/collections           - Multipart: fields, items JSON, image
- GET    /api/collections/summary
- GET    /api/collections/{id}
- PATCH  /api/collections/{id}      - Moderate ({"status": "verified"})
- DELETE /api/collections/{id}
- GET    /api/hotspots
- POST   /api/hotspots
- GET    /api/hotspots/ready
- PATCH  /api/hotspots/{id}
- DELETE /api/hotspots/{id}
- GET    /api/users
- PATCH  /api/users/{id}
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.access import AccountStatus, ActorContext, Operation, require
from core.errors import TrackerError, ValidationError
from core.submission import aggregate_submissions, zones_ready_for_pickup
from web.auth import (
    clear_session_cookie,
    get_session_secret,
    resolve_actor,
    set_session_cookie,
    verify_session,
)
from web.services import Services, get_services


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api", tags=["api"])

SUSPENDED_VIEW = "/suspended"


# =============================================================================
# Request Models
# =============================================================================


class SessionRequest(BaseModel):
    token: str


class StatusUpdate(BaseModel):
    status: str


class ZoneCreate(BaseModel):
    name: str
    latitude: Decimal
    longitude: Decimal
    description: Optional[str] = None
    status: Optional[str] = None
    estimated_volume: Optional[Decimal] = None
    accessibility: Optional[str] = None
    partner_info: Optional[str] = None


class ZoneUpdate(BaseModel):
    name: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    description: Optional[str] = None
    status: Optional[str] = None
    estimated_volume: Optional[Decimal] = None
    accessibility: Optional[str] = None
    partner_info: Optional[str] = None


class ActorUpdate(BaseModel):
    status: Optional[str] = None
    assigned_zone_id: Optional[str] = None


# =============================================================================
# Authentication Dependency
# =============================================================================


def require_actor(
    request: Request,
    services: Services = Depends(get_services),
) -> ActorContext:
    """
    Dependency that requires a valid session.

    Raises HTTPException(401) if not authenticated.
    """
    actor = resolve_actor(request, services.directory, services.config)
    if actor is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return actor


# =============================================================================
# Session
# =============================================================================


@router.get("/me")
async def me(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Current actor, with a redirect hint for suspended accounts."""
    record = services.directory.get(actor.actor_id)
    body = record.to_dict() if record else actor.to_dict()
    body["redirect"] = SUSPENDED_VIEW if actor.is_suspended else None
    return body


@router.post("/session")
async def start_session(body: SessionRequest, services: Services = Depends(get_services)):
    """Store a token issued by the identity provider as the session cookie."""
    session = verify_session(body.token, get_session_secret(services.config))
    if session is None or services.directory.get(session.actor_id) is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    response = JSONResponse({"actor_id": session.actor_id})
    set_session_cookie(response, body.token, services.config)
    logger.info("Session started for %s", session.actor_id)
    return response


@router.post("/logout")
async def logout():
    response = Response(status_code=204)
    clear_session_cookie(response)
    return response


# =============================================================================
# Collections
# =============================================================================


@router.get("/collections")
async def list_collections(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Field officers get their own submissions; other roles get all."""
    return [s.to_dict() for s in services.lifecycle.list_submissions(actor)]


@router.post("/collections", status_code=201)
async def create_collection(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
    zone_id: Optional[str] = Form(None),
    new_zone_name: Optional[str] = Form(None),
    is_new_zone: Optional[bool] = Form(None),
    latitude: Optional[str] = Form(None),
    longitude: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    items: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    """
    Create a submission for the signed-in field officer.

    ``items`` is a JSON array of {material_type, weight, bag_count}.
    The owner is always the session actor.
    """
    # Deny before the evidence file is written
    require(actor, Operation.CREATE_SUBMISSION, resource_owner_id=actor.actor_id)

    try:
        parsed_items = json.loads(items) if items else []
    except json.JSONDecodeError:
        raise ValidationError("Items must be a JSON array")

    evidence_ref = None
    if image is not None and image.filename:
        content = await image.read()
        evidence_ref = services.storage.store(image.filename, content)

    data = {
        "zone_id": zone_id,
        "new_zone_name": new_zone_name,
        "is_new_zone": is_new_zone,
        "latitude": latitude or None,
        "longitude": longitude or None,
        "notes": notes,
        "items": parsed_items,
        "evidence_ref": evidence_ref,
    }

    try:
        submission = services.lifecycle.create_submission(actor, data)
    except TrackerError:
        if evidence_ref:
            services.storage.delete(evidence_ref)
        raise

    return submission.to_dict()


@router.get("/collections/summary")
async def collections_summary(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Verified totals over the submissions the actor can see."""
    submissions = services.lifecycle.list_submissions(actor)
    zones = services.zone_service.list_zones(actor)
    return aggregate_submissions(submissions, zones=zones).to_dict()


@router.get("/collections/{submission_id}")
async def get_collection(
    submission_id: str,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    return services.lifecycle.get_submission(actor, submission_id).to_dict()


@router.patch("/collections/{submission_id}")
async def moderate_collection(
    submission_id: str,
    body: StatusUpdate,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Move a pending submission to verified or rejected (admin action)."""
    result = services.lifecycle.transition_submission_status(actor, submission_id, body.status)
    return result.to_dict()


@router.delete("/collections/{submission_id}", status_code=204)
async def delete_collection(
    submission_id: str,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    services.lifecycle.delete_submission(actor, submission_id)
    return Response(status_code=204)


# =============================================================================
# Hotspots
# =============================================================================


@router.get("/hotspots")
async def list_hotspots(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    return [z.to_dict() for z in services.zone_service.list_zones(actor)]


@router.get("/hotspots/ready")
async def hotspots_ready_for_pickup(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Critical or high-volume zones for partner pickup runs."""
    zones = services.zone_service.list_zones(actor)
    return [z.to_dict() for z in zones_ready_for_pickup(zones, services.pickup_threshold)]


@router.post("/hotspots", status_code=201)
async def create_hotspot(
    body: ZoneCreate,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    data = body.model_dump(exclude_none=True)
    return services.zone_service.create_zone(actor, data).to_dict()


@router.patch("/hotspots/{zone_id}")
async def update_hotspot(
    zone_id: str,
    body: ZoneUpdate,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    changes = body.model_dump(exclude_unset=True)
    return services.zone_service.update_zone(actor, zone_id, changes).to_dict()


@router.delete("/hotspots/{zone_id}", status_code=204)
async def delete_hotspot(
    zone_id: str,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    services.zone_service.delete_zone(actor, zone_id)
    return Response(status_code=204)


# =============================================================================
# Users
# =============================================================================


@router.get("/users")
async def list_users(
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    return [a.to_dict() for a in services.directory.list_actors(actor)]


@router.patch("/users/{actor_id}")
async def update_user(
    actor_id: str,
    body: ActorUpdate,
    actor: ActorContext = Depends(require_actor),
    services: Services = Depends(get_services),
):
    """Suspend/reactivate an actor or change their assigned zone."""
    changes = body.model_dump(exclude_unset=True)
    kwargs = {}

    if "status" in changes:
        try:
            kwargs["status"] = AccountStatus(changes["status"])
        except ValueError:
            raise ValidationError(f"Invalid account status: {changes['status']}")
    if "assigned_zone_id" in changes:
        kwargs["assigned_zone_id"] = changes["assigned_zone_id"]

    return services.directory.update_actor(actor, actor_id, **kwargs).to_dict()
