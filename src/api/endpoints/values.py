from __future__ import annotations

from fastapi import APIRouter, Depends

from src.api.deps import get_dispatcher
from src.schemas.value import DeadLetterRead, SubmissionAccepted, ValueRead, ValueSubmission
from src.services.dispatcher import JobDispatcher


router = APIRouter(prefix="/values", tags=["values"])


@router.get("/all", response_model=list[ValueRead])
async def list_all_values_endpoint(
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> list[ValueRead]:
    records = await dispatcher.list_all()
    return [ValueRead.model_validate(r) for r in records]


@router.get("/current", response_model=dict[str, str])
async def list_current_values_endpoint(
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> dict[str, str]:
    return await dispatcher.list_current()


@router.get("/status", response_model=dict[str, str])
async def list_value_statuses_endpoint(
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> dict[str, str]:
    """Job status per index: pending, computed or failed."""
    return await dispatcher.list_statuses()


@router.get("/failed", response_model=list[DeadLetterRead])
async def list_failed_values_endpoint(
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> list[DeadLetterRead]:
    return [DeadLetterRead.model_validate(d) for d in await dispatcher.list_failed()]


@router.post("", response_model=SubmissionAccepted)
async def submit_value_endpoint(
    payload: ValueSubmission,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
) -> SubmissionAccepted:
    """Queue an index for computation and return without waiting for it.

    Invalid indexes (negative, non-numeric, above the limit) get a plain-text 422.
    """

    result = await dispatcher.submit(payload.index)
    return SubmissionAccepted(**result)
