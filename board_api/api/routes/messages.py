from typing import Annotated

from fastapi import APIRouter, Depends

from board_api.core.client_address import get_admission_service, get_client_address
from board_api.schemas.message import SubmissionRequest, SubmissionResponse
from board_api.services.admission_service import AdmissionService

router = APIRouter(tags=["Messages"])


@router.post("/api/message", response_model=SubmissionResponse)
async def submit_message(
    payload: SubmissionRequest,
    client_address: Annotated[str, Depends(get_client_address)],
    service: Annotated[AdmissionService, Depends(get_admission_service)],
) -> SubmissionResponse:
    """Submit an anonymous message to the board owner.

    Returns ``{"ok": true}`` once the message is stored. Operator
    notifications are sent afterwards in the background.

    Errors are returned as ``{"error": "..."}`` with status 400 (invalid
    input), 403 (blocked visitor), 429 (too frequent, rate or daily limit
    reached; see ``Retry-After``) or 500 (store failure, safe to retry).
    """
    await service.submit(payload, client_address)
    return SubmissionResponse()
