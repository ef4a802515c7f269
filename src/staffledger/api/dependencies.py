"""Request-scoped dependencies: caller identity, permissions, services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from staffledger.core.protocols import IPdfRenderer
from staffledger.services.documents import EndOfWorkDocumentService
from staffledger.services.recruitment import RecruitmentService

logger = logging.getLogger(__name__)

SUPER_ADMIN = "super_admin"

# resource -> action -> roles; super_admin is implicitly granted everything.
# endOfWorkDocuments has no role entry, so only super_admin reaches it.
PERMISSIONS: dict[str, dict[str, tuple[str, ...]]] = {
    "agents": {
        "create": (SUPER_ADMIN, "recruiter"),
        "read": (SUPER_ADMIN, "recruiter", "planner", "accountant", "agent"),
        "update": (SUPER_ADMIN, "recruiter", "planner"),
        "delete": (SUPER_ADMIN,),
    },
}


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as forwarded by the gateway."""

    user_id: str
    role: str


def has_permission(role: str, resource: str, action: str) -> bool:
    if role == SUPER_ADMIN:
        return True
    return role in PERMISSIONS.get(resource, {}).get(action, ())


def current_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Actor:
    if not x_user_id or not x_user_role:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Utilisateur non authentifié")
    return Actor(user_id=x_user_id, role=x_user_role)


def require_permission(resource: str, action: str) -> Callable[..., Actor]:
    """Dependency factory rejecting callers whose role lacks ``resource.action``."""

    def checker(actor: Actor = Depends(current_actor)) -> Actor:
        if not has_permission(actor.role, resource, action):
            logger.warning("Access denied: %s (%s) attempted %s.%s",
                           actor.user_id, actor.role, resource, action)
            raise HTTPException(
                status.HTTP_403_FORBIDDEN,
                detail="Accès refusé. Vous n'avez pas la permission d'effectuer cette action.",
            )
        return actor

    return checker


def get_document_service(request: Request) -> EndOfWorkDocumentService:
    return request.app.state.document_service


def get_recruitment_service(request: Request) -> RecruitmentService:
    return request.app.state.recruitment_service


def get_pdf_renderer(request: Request) -> Optional[IPdfRenderer]:
    return request.app.state.pdf_renderer
