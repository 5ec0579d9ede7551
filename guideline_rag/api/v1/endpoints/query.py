from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from guideline_rag.core.exceptions import AppError, GenerationFailedError, ValidationError
from guideline_rag.dependencies import get_chat_history_recorder, get_query_service
from guideline_rag.schemas.query import ChatMessage, QueryAnswer, QueryError, QueryRequest
from guideline_rag.services.query.chat_history import ChatHistoryRecorder
from guideline_rag.services.query.query_service import QueryService
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=QueryError(error=message).model_dump(),
    )


@router.post(
    "",
    response_model=QueryAnswer,
    responses={
        400: {"model": QueryError},
        500: {"model": QueryError},
        502: {"model": QueryError},
        504: {"model": QueryError},
    },
    summary="Ask the underwriting assistant",
    operation_id="query_guidelines",
)
async def query_guidelines(
    request: QueryRequest,
    query_service: Annotated[QueryService, Depends(get_query_service)],
):
    """
    Answer an underwriting question from the active carrier guidelines.

    This endpoint:
    1. Selects every active guideline (optionally filtered by carrier).
    2. Hands all of them to Gemini in a single generation call.
    3. Records the exchange when a session_id is given.
    4. Returns the answer and the guidelines that were in context.
    """
    try:
        return await query_service.answer(
            question=request.question,
            carrier_filters=request.carrier_filters,
            session_id=request.session_id,
        )
    except ValidationError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, e.message)
    except GenerationFailedError as e:
        LOGGER.error(
            "Guideline query failed",
            extra={"question": request.question[:100], "timed_out": e.timed_out},
        )
        if e.timed_out:
            return error_response(status.HTTP_504_GATEWAY_TIMEOUT, e.message)
        return error_response(status.HTTP_502_BAD_GATEWAY, e.message)
    except AppError as e:
        LOGGER.error(
            "Guideline query execution failed",
            extra={"question": request.question[:100]},
            exc_info=True,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)


@router.get(
    "/sessions/{session_id}/messages",
    response_model=List[ChatMessage],
    summary="Get chat session history",
    operation_id="get_session_messages",
)
async def get_session_messages(
    session_id: str,
    recorder: Annotated[ChatHistoryRecorder, Depends(get_chat_history_recorder)],
) -> List[ChatMessage]:
    """Retrieve the turns of a chat session, oldest first."""
    return await recorder.history(session_id)
