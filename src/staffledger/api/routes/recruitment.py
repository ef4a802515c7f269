"""Recruitment application endpoints (review, conversion to agent)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from staffledger.api.dependencies import Actor, get_recruitment_service, require_permission
from staffledger.services.recruitment import RecruitmentService

router = APIRouter(tags=["recruitment"])

RESOURCE = "agents"


@router.get("/{recruitment_id}")
def get_recruitment(
    recruitment_id: str,
    _: Actor = Depends(require_permission(RESOURCE, "read")),
    service: RecruitmentService = Depends(get_recruitment_service),
) -> dict[str, Any]:
    return {"recruitment": service.get(recruitment_id).to_wire()}


@router.put("/{recruitment_id}")
def update_recruitment(
    recruitment_id: str,
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(require_permission(RESOURCE, "update")),
    service: RecruitmentService = Depends(get_recruitment_service),
) -> dict[str, Any]:
    recruitment = service.update(recruitment_id, payload, actor_id=actor.user_id)
    return {"message": "Candidature mise à jour avec succès", "recruitment": recruitment.to_wire()}


@router.post("/{recruitment_id}/convert")
def convert_to_agent(
    recruitment_id: str,
    actor: Actor = Depends(require_permission(RESOURCE, "create")),
    service: RecruitmentService = Depends(get_recruitment_service),
) -> dict[str, Any]:
    result = service.convert_to_agent(recruitment_id, actor_id=actor.user_id)
    message = "Candidature convertie en agent avec succès"
    if result.reused_existing:
        message += " (agent existant)"
    return {
        "message": message,
        "recruitment": result.recruitment.to_wire(),
        "agent": result.agent.to_wire(),
    }


@router.delete("/{recruitment_id}")
def delete_recruitment(
    recruitment_id: str,
    _: Actor = Depends(require_permission(RESOURCE, "delete")),
    service: RecruitmentService = Depends(get_recruitment_service),
) -> dict[str, Any]:
    service.delete(recruitment_id)
    return {"message": "Candidature supprimée avec succès"}
