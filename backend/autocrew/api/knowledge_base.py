"""Knowledge-base document records attached to a crew."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrew.db.postgres import get_db
from autocrew.models.crew import Crew
from autocrew.models.knowledge_base import KnowledgeBaseDocument
from autocrew.schemas.knowledge_base import DocumentCreate, DocumentResponse
from autocrew.security import get_scope, require_permission
from autocrew.services.workflow import WorkflowClient, get_workflow_client
from autocrew.utils.activation import with_activation
from autocrew.utils.tenant import Scope, SessionContext, get_scoped_or_404, set_tenant

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{crew_id}/knowledge-base", response_model=list[DocumentResponse])
async def list_documents(
    crew_id: UUID,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")

    result = await db.execute(
        select(KnowledgeBaseDocument)
        .where(KnowledgeBaseDocument.crew_id == crew.id)
        .order_by(KnowledgeBaseDocument.created_at.desc())
    )
    return result.scalars().all()


@router.post(
    "/{crew_id}/knowledge-base",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    crew_id: UUID,
    file: UploadFile = File(...),
    session: SessionContext = Depends(require_permission("manage_knowledge_base")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
    workflow: WorkflowClient = Depends(get_workflow_client)
):
    """
    Hand a document to the indexing workflow and record the outcome.

    The record is written as ``processing`` before the hand-over. A rejected
    or timed-out upload marks it ``error``; an upload that never reached the
    workflow is removed again. The first indexed document flags the crew's
    activation state.
    """
    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")
    if crew.type != "customer_support":
        raise HTTPException(
            status_code=400,
            detail="Knowledge base is only available for customer support crews"
        )

    content = await file.read()
    try:
        data = DocumentCreate(
            filename=file.filename or "",
            mime_type=file.content_type or "",
            file_size=len(content),
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))

    if not workflow.is_configured:
        logger.error("Document workflow webhook or API key is not configured")
        raise HTTPException(status_code=503, detail="Document processing is not configured")

    document = KnowledgeBaseDocument(
        crew_id=crew.id,
        filename=data.filename,
        mime_type=data.mime_type,
        file_size=data.file_size,
        status="processing",
        uploaded_by_id=session.user_id,
    )
    # Documents always belong to the crew's organization, whatever the caller's active one is
    set_tenant(document, crew.org_id)
    db.add(document)
    await db.commit()
    await db.refresh(document)

    result = await workflow.upload_document(
        crew.crew_code, document.id, data.filename, content, data.mime_type
    )

    if result.timed_out:
        document.status = "error"
        await db.commit()
        raise HTTPException(
            status_code=408,
            detail="Document processing timeout - file may be too large or complex"
        )

    if result.error:
        await db.delete(document)
        await db.commit()
        raise HTTPException(status_code=502, detail="Failed to upload document")

    if not result.ok:
        document.status = "error"
        await db.commit()
        logger.warning("Workflow rejected %s for crew %s: %s", data.filename, crew.crew_code, result.message)
        raise HTTPException(status_code=result.failure_status, detail=result.message)

    document.status = "indexed"
    document.chunk_count = result.chunk_count
    config = crew.config or {}
    if not (config.get("activation_state") or {}).get("documents_uploaded"):
        support_configured = bool((config.get("metadata") or {}).get("support_email"))
        crew.config = with_activation(
            crew.config, documents_uploaded=True, support_configured=support_configured
        )
    await db.commit()
    await db.refresh(document)

    logger.info(
        "Indexed document %s for crew %s (%d chunks)",
        document.filename, crew.crew_code, document.chunk_count,
    )
    return document


@router.delete("/{crew_id}/knowledge-base/{doc_id}")
async def delete_document(
    crew_id: UUID,
    doc_id: UUID,
    session: SessionContext = Depends(require_permission("manage_knowledge_base")),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db)
):
    crew = await get_scoped_or_404(db, Crew, crew_id, scope, "Crew")
    document = await get_scoped_or_404(db, KnowledgeBaseDocument, doc_id, scope, "Document")
    if document.crew_id != crew.id:
        raise HTTPException(status_code=404, detail="Document not found")

    await db.delete(document)
    await db.commit()
    return {"status": "deleted", "doc_id": str(doc_id)}
