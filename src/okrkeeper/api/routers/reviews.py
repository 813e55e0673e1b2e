"""Review router for OKR check-ins."""

from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query, Response, status
from pydantic import BaseModel

from okrkeeper.api.deps import CurrentUser, Reviews
from okrkeeper.api.exceptions import unwrap
from okrkeeper.schemas.okr import Review, ReviewType

router = APIRouter()

OkrId = Annotated[str, Path(description="OKR ID")]
ReviewId = Annotated[str, Path(description="Review ID")]


class ReviewCreate(BaseModel):
    """Request to review an OKR."""

    type: ReviewType
    content: str


class ReviewUpdate(BaseModel):
    content: Optional[str] = None


@router.get("/okrs/{okr_id}/reviews", response_model=list[Review], summary="List OKR reviews")
async def list_reviews(
    okr_id: OkrId,
    user: CurrentUser,
    reviews: Reviews,
    review_type: Annotated[Optional[ReviewType], Query(alias="type")] = None,
) -> list[Review]:
    return unwrap(
        await reviews.list_reviews(
            {"okr_id": okr_id, "user_id": user.user_id, "type": review_type}
        )
    )


@router.post(
    "/okrs/{okr_id}/reviews",
    response_model=Review,
    status_code=status.HTTP_201_CREATED,
    summary="Review an OKR",
    description="Requires team admin role or ownership of the OKR.",
)
async def create_review(
    okr_id: OkrId,
    request: ReviewCreate,
    user: CurrentUser,
    reviews: Reviews,
) -> Review:
    return unwrap(
        await reviews.create_review(
            {**request.model_dump(), "okr_id": okr_id, "reviewer_id": user.user_id}
        )
    )


@router.patch("/reviews/{review_id}", response_model=Review, summary="Edit my review")
async def update_review(
    review_id: ReviewId,
    request: ReviewUpdate,
    user: CurrentUser,
    reviews: Reviews,
) -> Review:
    return unwrap(
        await reviews.update_review(
            {**request.model_dump(), "review_id": review_id, "user_id": user.user_id}
        )
    )


@router.delete(
    "/reviews/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete my review",
)
async def delete_review(review_id: ReviewId, user: CurrentUser, reviews: Reviews) -> Response:
    unwrap(await reviews.delete_review({"review_id": review_id, "user_id": user.user_id}))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
