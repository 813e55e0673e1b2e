"""OKR and key result router.

OKR creation and listing live under ``/teams/{team_id}/okrs``; this router
handles single objectives and their key results.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Path, Response, status
from pydantic import BaseModel

from okrkeeper.api.deps import CurrentUser, Okrs
from okrkeeper.api.exceptions import unwrap
from okrkeeper.schemas.okr import KeyResult, Okr, OkrWithKeyResults

router = APIRouter()

OkrId = Annotated[str, Path(description="OKR ID")]
KeyResultId = Annotated[str, Path(description="Key result ID")]


# =============================================================================
# Schemas
# =============================================================================


class OkrUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class KeyResultUpdate(BaseModel):
    title: Optional[str] = None
    target_value: Optional[float] = None
    current_value: Optional[float] = None
    unit: Optional[str] = None


class ProgressUpdate(BaseModel):
    current_value: float


# =============================================================================
# OKR Endpoints
# =============================================================================


@router.get("/okrs/{okr_id}", response_model=OkrWithKeyResults, summary="Get an OKR")
async def get_okr(okr_id: OkrId, user: CurrentUser, okrs: Okrs) -> OkrWithKeyResults:
    return unwrap(await okrs.get_okr({"okr_id": okr_id, "user_id": user.user_id}))


@router.patch(
    "/okrs/{okr_id}",
    response_model=Okr,
    summary="Update an OKR",
    description="Requires team admin role or ownership of the OKR.",
)
async def update_okr(
    okr_id: OkrId,
    request: OkrUpdate,
    user: CurrentUser,
    okrs: Okrs,
) -> Okr:
    return unwrap(
        await okrs.update_okr(
            {**request.model_dump(), "okr_id": okr_id, "user_id": user.user_id}
        )
    )


@router.delete("/okrs/{okr_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an OKR")
async def delete_okr(okr_id: OkrId, user: CurrentUser, okrs: Okrs) -> Response:
    unwrap(await okrs.delete_okr({"okr_id": okr_id, "user_id": user.user_id}))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Key Result Endpoints
# =============================================================================


@router.patch("/key-results/{key_result_id}", response_model=KeyResult, summary="Update a key result")
async def update_key_result(
    key_result_id: KeyResultId,
    request: KeyResultUpdate,
    user: CurrentUser,
    okrs: Okrs,
) -> KeyResult:
    return unwrap(
        await okrs.update_key_result(
            {**request.model_dump(), "key_result_id": key_result_id, "user_id": user.user_id}
        )
    )


@router.put(
    "/key-results/{key_result_id}/progress",
    response_model=KeyResult,
    summary="Record key result progress",
)
async def update_progress(
    key_result_id: KeyResultId,
    request: ProgressUpdate,
    user: CurrentUser,
    okrs: Okrs,
) -> KeyResult:
    return unwrap(
        await okrs.update_key_result_progress(
            {
                "key_result_id": key_result_id,
                "user_id": user.user_id,
                "current_value": request.current_value,
            }
        )
    )


@router.delete(
    "/key-results/{key_result_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a key result",
)
async def delete_key_result(
    key_result_id: KeyResultId,
    user: CurrentUser,
    okrs: Okrs,
) -> Response:
    unwrap(
        await okrs.delete_key_result({"key_result_id": key_result_id, "user_id": user.user_id})
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
