"""
Alias reconciliation API router
"""

from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..aliases.reconciler import AliasReconciler, ReconcileResult, ReconcileState
from ..dependencies import get_reconciler
from ..dns.types import ChangeOutcome, DNSChange

router = APIRouter(prefix="/aliases", tags=["aliases"])


class ReconcileRequest(BaseModel):
    allow_empty: bool = False


class DNSChangeModel(BaseModel):
    action: str
    name: str
    record_type: str
    value: str
    ttl: int


class ChangeOutcomeModel(BaseModel):
    change: DNSChangeModel
    applied: bool
    error: str | None = None


class ReconcileResponse(BaseModel):
    status: str
    trail: List[str]
    submitted: int
    changes: List[DNSChangeModel]
    outcomes: List[ChangeOutcomeModel]
    change_id: str | None = None


_STATUS_CODES = {
    ReconcileState.SUCCEEDED: status.HTTP_200_OK,
    ReconcileState.NOOP: status.HTTP_200_OK,
    ReconcileState.PARTIAL_FAILURE: status.HTTP_207_MULTI_STATUS,
    ReconcileState.EMPTY_MANIFEST: status.HTTP_409_CONFLICT,
}


def _change_model(change: DNSChange) -> DNSChangeModel:
    return DNSChangeModel(
        action=change.action.value,
        name=change.name,
        record_type=change.record_type.value,
        value=change.value,
        ttl=change.ttl,
    )


def _outcome_model(outcome: ChangeOutcome) -> ChangeOutcomeModel:
    return ChangeOutcomeModel(
        change=_change_model(outcome.change),
        applied=outcome.applied,
        error=outcome.error,
    )


def to_response(result: ReconcileResult) -> ReconcileResponse:
    batch_result = result.batch_result
    return ReconcileResponse(
        status=result.status.value,
        trail=[state.value for state in result.trail],
        submitted=result.submitted,
        changes=[_change_model(change) for change in result.changes],
        outcomes=[_outcome_model(o) for o in batch_result.outcomes]
        if batch_result
        else [],
        change_id=batch_result.change_id if batch_result else None,
    )


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_aliases(
    body: ReconcileRequest = ReconcileRequest(),
    reconciler: AliasReconciler = Depends(get_reconciler),
) -> JSONResponse:
    """
    Converge alias CNAMEs to the configured manifest.

    Responds 409 when the manifest is empty but aliases exist; repeat with
    ``allow_empty`` to delete them all. Responds 207 when only part of the
    batch was applied.
    """
    result = await reconciler.reconcile_aliases(allow_empty=body.allow_empty)
    return JSONResponse(
        status_code=_STATUS_CODES.get(result.status, status.HTTP_200_OK),
        content=to_response(result).model_dump(),
    )


@router.get("/diff", response_model=List[DNSChangeModel])
async def get_alias_diff(
    reconciler: AliasReconciler = Depends(get_reconciler),
) -> List[DNSChangeModel]:
    """Pending alias changes for the configured manifest, without applying them."""
    changes = await reconciler.preview()
    return [_change_model(change) for change in changes]
