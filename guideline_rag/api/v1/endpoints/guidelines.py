from datetime import date
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

import pydantic
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)

from guideline_rag.core.exceptions import (
    AppError,
    GuidelineNotFoundError,
    InvalidStateTransitionError,
    ValidationError,
)
from guideline_rag.dependencies import (
    get_guideline_repository,
    get_guideline_service,
    get_ingestion_dispatcher,
)
from guideline_rag.models.guideline_state import (
    INGESTIBLE_STATUSES,
    DocumentType,
    GuidelineStatus,
)
from guideline_rag.repositories.guideline_repository import GuidelineRepository
from guideline_rag.schemas.guidelines import (
    GuidelineListResponse,
    GuidelineMetadata,
    GuidelineResponse,
    IngestAccepted,
    IngestRequest,
)
from guideline_rag.schemas.responses import ApiResponse
from guideline_rag.services.guideline_service import GuidelineService
from guideline_rag.services.ingestion.dispatcher import IngestionDispatcher
from guideline_rag.utils.logging import get_logger
from guideline_rag.utils.responses import create_api_response, create_error_detail

LOGGER = get_logger(__name__)

router = APIRouter()


def _http_error(request: Request, error: AppError) -> HTTPException:
    """Translate a service error into an RFC 7807 HTTPException."""
    if isinstance(error, GuidelineNotFoundError):
        code, title = status.HTTP_404_NOT_FOUND, "Guideline Not Found"
    elif isinstance(error, InvalidStateTransitionError):
        code, title = status.HTTP_409_CONFLICT, "Invalid Status Transition"
    elif isinstance(error, ValidationError):
        code, title = status.HTTP_400_BAD_REQUEST, "Invalid Request"
    else:
        code, title = status.HTTP_502_BAD_GATEWAY, "Upstream Failure"

    error_detail = create_error_detail(
        title=title, status=code, detail=error.message, request=request
    )
    return HTTPException(status_code=code, detail=error_detail.model_dump(mode="json"))


@router.post(
    "/ingest",
    response_model=ApiResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ingest a stored guideline",
    operation_id="ingest_guideline",
)
async def ingest_guideline(
    request: Request,
    body: IngestRequest,
    background_tasks: BackgroundTasks,
    guideline_repo: Annotated[GuidelineRepository, Depends(get_guideline_repository)],
    dispatcher: Annotated[IngestionDispatcher, Depends(get_ingestion_dispatcher)],
) -> ApiResponse:
    """Register a guideline with Gemini in the background.

    Poll ``GET /guidelines/{id}`` for the resulting status.
    """
    guideline = await guideline_repo.get_by_id(body.guideline_id)
    if guideline is None:
        raise _http_error(request, GuidelineNotFoundError(body.guideline_id))
    if GuidelineStatus(guideline.status) not in INGESTIBLE_STATUSES:
        raise _http_error(
            request,
            InvalidStateTransitionError(body.guideline_id, guideline.status, "ingest"),
        )

    background_tasks.add_task(dispatcher.dispatch, body.guideline_id)
    LOGGER.info(
        f"Ingestion scheduled for guideline {body.guideline_id}",
        extra={"guideline_id": str(body.guideline_id)},
    )

    return create_api_response(
        data=IngestAccepted(guideline_id=body.guideline_id),
        message="Ingestion started",
        request=request,
    )


@router.post(
    "/upload",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a guideline document",
    operation_id="upload_guideline",
)
async def upload_guideline(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="Carrier guideline PDF or DOCX"),
    carrier_name: str = Form(...),
    product_type: str = Form(...),
    effective_date: date = Form(...),
    document_type: DocumentType = Form(DocumentType.FULL_GUIDELINES),
    expiration_date: Optional[date] = Form(None),
    min_coverage: Optional[Decimal] = Form(None),
    max_coverage: Optional[Decimal] = Form(None),
    min_age: Optional[int] = Form(None),
    max_age: Optional[int] = Form(None),
    notes: Optional[str] = Form(None),
    uploaded_by: Optional[str] = Form(None),
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)] = None,
    dispatcher: Annotated[IngestionDispatcher, Depends(get_ingestion_dispatcher)] = None,
) -> ApiResponse:
    """Store a guideline document and start its ingestion."""
    try:
        metadata = GuidelineMetadata(
            carrier_name=carrier_name,
            product_type=product_type,
            document_type=document_type,
            effective_date=effective_date,
            expiration_date=expiration_date,
            min_coverage=min_coverage,
            max_coverage=max_coverage,
            min_age=min_age,
            max_age=max_age,
            notes=notes,
            uploaded_by=uploaded_by,
        )
    except pydantic.ValidationError as e:
        raise _http_error(request, ValidationError(str(e), original_error=e))

    content = await file.read()
    try:
        guideline = await guideline_service.upload_guideline(
            metadata, file.filename or "", content
        )
    except AppError as e:
        raise _http_error(request, e)

    background_tasks.add_task(dispatcher.dispatch, guideline.id)

    return create_api_response(
        data=GuidelineResponse.model_validate(guideline),
        message="Guideline uploaded; ingestion started",
        request=request,
    )


@router.get(
    "",
    response_model=ApiResponse,
    summary="List guidelines",
    operation_id="list_guidelines",
)
async def list_guidelines(
    request: Request,
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)],
    status_filter: Optional[GuidelineStatus] = Query(None, alias="status"),
    carrier_name: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    """List guidelines, newest first."""
    total, guidelines = await guideline_service.list_guidelines(
        status=status_filter, carrier_name=carrier_name, limit=limit, offset=offset
    )
    return create_api_response(
        data=GuidelineListResponse(
            total=total,
            guidelines=[GuidelineResponse.model_validate(g) for g in guidelines],
        ),
        message="Guidelines retrieved successfully",
        request=request,
    )


@router.get(
    "/{guideline_id}",
    response_model=ApiResponse,
    summary="Get guideline details",
    operation_id="get_guideline",
)
async def get_guideline(
    request: Request,
    guideline_id: UUID,
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)],
) -> ApiResponse:
    try:
        guideline = await guideline_service.get_guideline(guideline_id)
    except AppError as e:
        raise _http_error(request, e)

    return create_api_response(
        data=GuidelineResponse.model_validate(guideline),
        message="Guideline retrieved successfully",
        request=request,
    )


@router.get(
    "/{guideline_id}/download-url",
    response_model=ApiResponse,
    summary="Get a signed download URL",
    operation_id="get_guideline_download_url",
)
async def get_download_url(
    request: Request,
    guideline_id: UUID,
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)],
) -> ApiResponse:
    try:
        url = await guideline_service.get_download_url(guideline_id)
    except AppError as e:
        raise _http_error(request, e)

    return create_api_response(
        data={"guideline_id": str(guideline_id), "url": url},
        message="Download URL generated",
        request=request,
    )


@router.post(
    "/{guideline_id}/retry",
    response_model=ApiResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Retry a failed ingestion",
    operation_id="retry_guideline",
)
async def retry_guideline(
    request: Request,
    guideline_id: UUID,
    background_tasks: BackgroundTasks,
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)],
    dispatcher: Annotated[IngestionDispatcher, Depends(get_ingestion_dispatcher)],
) -> ApiResponse:
    """Re-run ingestion for an ``error``, ``partial`` or stuck ``processing`` guideline."""
    try:
        guideline = await guideline_service.retry_guideline(guideline_id)
    except AppError as e:
        raise _http_error(request, e)

    background_tasks.add_task(dispatcher.dispatch, guideline_id)

    return create_api_response(
        data=GuidelineResponse.model_validate(guideline),
        message="Retry started",
        request=request,
    )


@router.post(
    "/{guideline_id}/archive",
    response_model=ApiResponse,
    summary="Archive a guideline",
    operation_id="archive_guideline",
)
async def archive_guideline(
    request: Request,
    guideline_id: UUID,
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)],
) -> ApiResponse:
    try:
        guideline = await guideline_service.archive_guideline(guideline_id)
    except AppError as e:
        raise _http_error(request, e)

    return create_api_response(
        data=GuidelineResponse.model_validate(guideline),
        message="Guideline archived",
        request=request,
    )


@router.delete(
    "/{guideline_id}",
    response_model=ApiResponse,
    summary="Delete a guideline",
    operation_id="delete_guideline",
)
async def delete_guideline(
    request: Request,
    guideline_id: UUID,
    guideline_service: Annotated[GuidelineService, Depends(get_guideline_service)],
) -> ApiResponse:
    """Delete the guideline row and, best effort, its stored and registered files."""
    try:
        await guideline_service.delete_guideline(guideline_id)
    except AppError as e:
        raise _http_error(request, e)

    return create_api_response(
        data=None,
        message="Guideline deleted successfully",
        request=request,
    )
