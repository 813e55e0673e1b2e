"""Review service.

Reviews are written by an OKR's owner or a team admin. Once written, only
the original reviewer can change or delete them, whatever their team role.
"""

import logging

from okrkeeper.schemas.okr import (
    CreateReviewInput,
    CreateReviewParams,
    ListReviewsInput,
    Review,
    ReviewActorInput,
    UpdateReviewInput,
    UpdateReviewParams,
)

from .context import ServiceContext
from .errors import (
    NotFoundError,
    Payload,
    repository_errors,
    returns_result,
    validate,
)
from .policy import Action, evaluate, require

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for OKR reviews."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    async def _require_review(self, review_id) -> Review:
        with repository_errors("Failed to get review"):
            review = await self.ctx.reviews.get_by_id(review_id)
        if review is None:
            raise NotFoundError("Review")
        return review

    @returns_result
    async def create_review(self, data: Payload) -> Review:
        """Write a progress or final review on an OKR.

        On an ownerless team OKR only team admins qualify.
        """
        params = validate(CreateReviewInput, data)

        with repository_errors("Failed to get OKR"):
            okr = await self.ctx.okrs.get_by_id(params.okr_id)
        if okr is None:
            raise NotFoundError("OKR")

        with repository_errors("Failed to check team membership"):
            membership = await self.ctx.members.get(okr.team_id, params.reviewer_id)
        require(evaluate(Action.CREATE_REVIEW, params.reviewer_id, membership, okr=okr))

        with repository_errors("Failed to create review"):
            review = await self.ctx.reviews.create(
                CreateReviewParams(
                    okr_id=okr.id,
                    type=params.type,
                    content=params.content,
                    reviewer_id=params.reviewer_id,
                )
            )
        logger.info(f"Review {review.id} ({review.type.value}) added to OKR {okr.id}")
        return review

    @returns_result
    async def list_reviews(self, data: Payload) -> list[Review]:
        """List an OKR's reviews, newest first (team members only)."""
        params = validate(ListReviewsInput, data)

        with repository_errors("Failed to get OKR"):
            okr = await self.ctx.okrs.get_by_id(params.okr_id)
        if okr is None:
            raise NotFoundError("OKR")

        with repository_errors("Failed to check team membership"):
            membership = await self.ctx.members.get(okr.team_id, params.user_id)
        require(evaluate(Action.VIEW_TEAM, params.user_id, membership))

        with repository_errors("Failed to list reviews"):
            return await self.ctx.reviews.list_by_okr(okr.id, params.type)

    @returns_result
    async def update_review(self, data: Payload) -> Review:
        params = validate(UpdateReviewInput, data)
        review = await self._require_review(params.review_id)
        require(evaluate(Action.UPDATE_REVIEW, params.user_id, None, review=review))

        changes = params.changes()

        with repository_errors("Failed to update review"):
            updated = await self.ctx.reviews.update(review.id, UpdateReviewParams(**changes))
        logger.info(f"Review {review.id} updated by {params.user_id}")
        return updated

    @returns_result
    async def delete_review(self, data: Payload) -> None:
        params = validate(ReviewActorInput, data)
        review = await self._require_review(params.review_id)
        require(evaluate(Action.DELETE_REVIEW, params.user_id, None, review=review))

        with repository_errors("Failed to delete review"):
            await self.ctx.reviews.delete(review.id)
        logger.info(f"Review {review.id} deleted by {params.user_id}")
