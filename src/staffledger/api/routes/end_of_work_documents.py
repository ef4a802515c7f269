"""End-of-work settlement document endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status

from staffledger.api.dependencies import (
    Actor,
    get_document_service,
    get_pdf_renderer,
    require_permission,
)
from staffledger.core.exceptions import RendererError
from staffledger.core.protocols import IPdfRenderer
from staffledger.services.documents import EndOfWorkDocumentService

router = APIRouter(tags=["end-of-work-documents"])

RESOURCE = "endOfWorkDocuments"


@router.get("")
def list_documents(
    agent_id: Optional[str] = Query(default=None, alias="agentId"),
    payment_status: Optional[str] = Query(default=None, alias="paymentStatus"),
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    _: Actor = Depends(require_permission(RESOURCE, "read")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    result = service.find_all(agent_id=agent_id, payment_status=payment_status, page=page, limit=limit)
    return {
        "documents": [view.to_wire() for view in result.documents],
        "pagination": result.pagination.to_wire(),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_document(
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(require_permission(RESOURCE, "create")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    view = service.create(payload, actor_id=actor.user_id)
    return {"message": "Document de fin de travail créé", "document": view.to_wire()}


@router.get("/{document_id}")
def get_document(
    document_id: str,
    _: Actor = Depends(require_permission(RESOURCE, "read")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    return {"document": service.find_one(document_id).to_wire()}


@router.put("/{document_id}")
def update_document(
    document_id: str,
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(require_permission(RESOURCE, "update")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    view = service.update(document_id, payload, actor_id=actor.user_id)
    return {"message": "Document mis à jour", "document": view.to_wire()}


@router.post("/{document_id}/calculate-financial-rights")
def calculate_financial_rights(
    document_id: str,
    _: Actor = Depends(require_permission(RESOURCE, "update")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    view = service.calculate_financial_rights(document_id)
    return {"message": "Droits financiers calculés", "document": view.to_wire()}


@router.post("/{document_id}/payment")
def record_payment(
    document_id: str,
    payload: dict[str, Any] = Body(...),
    _: Actor = Depends(require_permission(RESOURCE, "update")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    view = service.record_payment(
        document_id,
        amount=payload.get("amount"),
        payment_method=payload.get("paymentMethod"),
        payment_reference=payload.get("paymentReference"),
    )
    return {"message": "Paiement enregistré", "document": view.to_wire()}


@router.get("/{document_id}/pdf")
def download_pdf(
    document_id: str,
    download: Optional[str] = Query(default=None),
    view: Optional[str] = Query(default=None),
    _: Actor = Depends(require_permission(RESOURCE, "read")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
    renderer: Optional[IPdfRenderer] = Depends(get_pdf_renderer),
) -> Response:
    context = service.pdf_context(document_id)
    if renderer is None:
        raise RendererError("Aucun moteur de rendu PDF n'est configuré")
    try:
        content = renderer.render(context)
    except RendererError:
        raise
    except Exception as exc:
        raise RendererError(f"Erreur lors de la génération du PDF: {exc}") from exc

    disposition = "attachment" if download == "true" or view is None else "inline"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"{disposition}; filename={context['filename']}",
            "Content-Length": str(len(content)),
        },
    )


@router.delete("/{document_id}")
def delete_document(
    document_id: str,
    _: Actor = Depends(require_permission(RESOURCE, "delete")),
    service: EndOfWorkDocumentService = Depends(get_document_service),
) -> dict[str, Any]:
    service.delete(document_id)
    return {"message": "Document supprimé"}
