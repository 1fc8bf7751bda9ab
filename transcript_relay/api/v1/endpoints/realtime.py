"""Realtime transcription session endpoint."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from transcript_relay.api.v1.dependencies import Realtime, rate_limit
from transcript_relay.core.exceptions import AppError
from transcript_relay.services.realtime_client import RealtimeTokenError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/token", dependencies=[Depends(rate_limit("token"))])
async def create_realtime_token(
    client: Realtime,
    language: Annotated[
        str, Query(min_length=1, max_length=16, description="Transcription language")
    ] = "en",
) -> dict[str, Any]:
    """Mint an ephemeral realtime session for the browser.

    The provider's session payload, including its client secret, is
    passed through unchanged.
    """
    try:
        return await client.create_session_token(language)
    except RealtimeTokenError as e:
        logger.error(f"Failed to create realtime session: {e}")
        raise AppError(
            title="Bad Gateway",
            detail="Failed to create realtime session",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="about:blank#realtime-unavailable",
        ) from e
