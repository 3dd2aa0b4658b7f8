"""
Streaming chat endpoint.

Each turn is classified before anything is streamed, so the emotion event is
always the first event the client receives. Medium and high risk turns also
raise a crisis alert in the background.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from empathyconnect.dependencies import get_alert_sink, get_gateway_client
from empathyconnect.schemas.chat import ChatRequest, ErrorResponse
from empathyconnect.services.chat import SYSTEM_PROMPT, multiplex
from empathyconnect.services.crisis import (
    ALERT_RISK_LEVELS,
    CrisisAlertSink,
    schedule_alert,
)
from empathyconnect.services.emotion import classify
from empathyconnect.services.gateway import GatewayClient, GatewayError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


@router.post(
    "/chat",
    responses={
        200: {"content": {"text/event-stream": {}}},
        402: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def chat(
    request: ChatRequest,
    gateway: GatewayClient = Depends(get_gateway_client),
    alert_sink: CrisisAlertSink = Depends(get_alert_sink),
):
    """
    Stream an empathetic reply to a user message.

    The response is a ``text/event-stream`` body: one emotion event, the
    provider's delta events, then ``[DONE]``. Failures before streaming starts
    return a JSON ``{"error": ...}`` body.
    """
    logger.info(
        f"Received message for session {request.session_id} "
        f"({len(request.message)} chars, {len(request.conversation_history)} history)"
    )

    analysis = classify(request.message)
    logger.info(
        f"Detected {analysis.emotion} emotion, {analysis.risk_level} risk "
        f"({analysis.primary_feeling})"
    )

    if request.session_id and analysis.risk_level in ALERT_RISK_LEVELS:
        schedule_alert(
            alert_sink,
            session_id=request.session_id,
            user_id=request.user_id,
            risk_level=analysis.risk_level,
            primary_feeling=analysis.primary_feeling,
            message_text=request.message,
        )

    try:
        upstream = await gateway.open_stream(
            SYSTEM_PROMPT,
            request.conversation_history,
            request.message,
            language=request.language,
            risk_level=analysis.risk_level,
        )
    except GatewayError as e:
        logger.error(f"Chat error ({e.status_code}): {e.message}")
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception as e:
        logger.error(f"Chat error: {e}")
        return JSONResponse(
            status_code=500, content={"error": str(e) or "Unknown error occurred"}
        )

    return StreamingResponse(
        multiplex(analysis, upstream),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
