"""OKR and key result service.

Every mutation resolves the chain it needs (key result → OKR → team
membership) before asking the policy evaluator, so denials never leave
partial writes behind.
"""

import logging
from typing import Optional
from uuid import UUID

from okrkeeper.schemas.common import Page
from okrkeeper.schemas.okr import (
    CreateKeyResultParams,
    CreateOkrInput,
    CreateOkrParams,
    KeyResult,
    KeyResultActorInput,
    ListTeamOkrsInput,
    Okr,
    OkrActorInput,
    OkrFilter,
    OkrType,
    OkrWithKeyResults,
    UpdateKeyResultInput,
    UpdateKeyResultParams,
    UpdateKeyResultProgressInput,
    UpdateOkrInput,
    UpdateOkrParams,
)
from okrkeeper.schemas.team import TeamMember

from .context import ServiceContext
from .errors import DeniedError, NotFoundError, Payload, repository_errors, returns_result, validate
from .policy import Action, evaluate, require

logger = logging.getLogger(__name__)


class OkrService:
    """Service for objectives and their key results."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    async def _membership(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        with repository_errors("Failed to check team membership"):
            return await self.ctx.members.get(team_id, user_id)

    async def _require_okr(self, okr_id: UUID) -> OkrWithKeyResults:
        with repository_errors("Failed to get OKR"):
            okr = await self.ctx.okrs.get_by_id(okr_id)
        if okr is None:
            raise NotFoundError("OKR")
        return okr

    async def _require_key_result(self, key_result_id: UUID) -> tuple[KeyResult, Okr]:
        with repository_errors("Failed to get key result"):
            key_result = await self.ctx.key_results.get_by_id(key_result_id)
        if key_result is None:
            raise NotFoundError("Key result")
        okr = await self._require_okr(key_result.okr_id)
        return key_result, okr

    async def _authorize_okr_edit(self, action: Action, user_id: UUID, okr: Okr) -> None:
        membership = await self._membership(okr.team_id, user_id)
        require(evaluate(action, user_id, membership, okr=okr))

    # =========================================================================
    # OKRs
    # =========================================================================

    @returns_result
    async def create_okr(self, data: Payload) -> OkrWithKeyResults:
        """Create an OKR together with its key results.

        Team OKRs are admin-only and may be left without an owner. Personal
        OKRs belong to the acting user. Key results start at zero.

        The OKR and each key result are separate writes: when key result N
        fails, the OKR and key results 1..N-1 stay persisted.

        Args:
            data: CreateOkrInput fields; ``user_id`` is the actor

        Returns:
            The OKR with the key results created for it
        """
        params = validate(CreateOkrInput, data)

        membership = await self._membership(params.team_id, params.user_id)
        action = Action.CREATE_TEAM_OKR if params.type == OkrType.TEAM else Action.CREATE_PERSONAL_OKR
        require(evaluate(action, params.user_id, membership))

        owner_id = params.owner_id
        if params.type == OkrType.PERSONAL:
            if owner_id is not None and owner_id != params.user_id:
                raise DeniedError("Personal OKRs can only be created for yourself")
            owner_id = params.user_id
        elif owner_id is not None and owner_id != params.user_id:
            if await self._membership(params.team_id, owner_id) is None:
                raise DeniedError("OKR owner must be a member of this team")

        with repository_errors("Failed to create OKR"):
            okr = await self.ctx.okrs.create(
                CreateOkrParams(
                    title=params.title,
                    description=params.description,
                    type=params.type,
                    team_id=params.team_id,
                    owner_id=owner_id,
                    quarter_year=params.quarter.year,
                    quarter_quarter=params.quarter.quarter,
                )
            )

        key_results = []
        for draft in params.key_results:
            with repository_errors("Failed to create key result"):
                key_results.append(
                    await self.ctx.key_results.create(
                        CreateKeyResultParams(
                            okr_id=okr.id,
                            title=draft.title,
                            target_value=draft.target_value,
                            current_value=0,
                            unit=draft.unit,
                        )
                    )
                )

        logger.info(f"Created {okr.type.value} OKR {okr.id} in team {okr.team_id}")
        return OkrWithKeyResults(**okr.model_dump(), key_results=key_results)

    @returns_result
    async def get_okr(self, data: Payload) -> OkrWithKeyResults:
        params = validate(OkrActorInput, data)
        okr = await self._require_okr(params.okr_id)
        membership = await self._membership(okr.team_id, params.user_id)
        require(evaluate(Action.VIEW_TEAM, params.user_id, membership))
        return okr

    @returns_result
    async def list_team_okrs(self, data: Payload) -> Page[OkrWithKeyResults]:
        """List a team's OKRs, filtered by type, owner and quarter."""
        params = validate(ListTeamOkrsInput, data)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.VIEW_TEAM, params.user_id, membership))

        with repository_errors("Failed to list OKRs"):
            return await self.ctx.okrs.list(
                params.pagination,
                OkrFilter(
                    team_id=params.team_id,
                    owner_id=params.owner_id,
                    type=params.type,
                    year=params.year,
                    quarter=params.quarter,
                ),
            )

    @returns_result
    async def update_okr(self, data: Payload) -> Okr:
        params = validate(UpdateOkrInput, data)
        okr = await self._require_okr(params.okr_id)
        await self._authorize_okr_edit(Action.UPDATE_OKR, params.user_id, okr)

        changes = params.changes()
        with repository_errors("Failed to update OKR"):
            updated = await self.ctx.okrs.update(okr.id, UpdateOkrParams(**changes))
        logger.info(f"OKR {okr.id} updated by {params.user_id}")
        return updated

    @returns_result
    async def delete_okr(self, data: Payload) -> None:
        """Delete an OKR with its key results and reviews."""
        params = validate(OkrActorInput, data)
        okr = await self._require_okr(params.okr_id)
        await self._authorize_okr_edit(Action.DELETE_OKR, params.user_id, okr)

        with repository_errors("Failed to delete OKR"):
            await self.ctx.okrs.delete(okr.id)
        logger.info(f"OKR {okr.id} deleted by {params.user_id}")

    # =========================================================================
    # Key results
    # =========================================================================

    @returns_result
    async def update_key_result(self, data: Payload) -> KeyResult:
        params = validate(UpdateKeyResultInput, data)
        key_result, okr = await self._require_key_result(params.key_result_id)
        await self._authorize_okr_edit(Action.UPDATE_KEY_RESULT, params.user_id, okr)

        changes = params.changes()
        with repository_errors("Failed to update key result"):
            return await self.ctx.key_results.update(
                key_result.id, UpdateKeyResultParams(**changes)
            )

    @returns_result
    async def update_key_result_progress(self, data: Payload) -> KeyResult:
        """Record a new current value.

        Any value >= 0 is accepted, including values above the target.
        """
        params = validate(UpdateKeyResultProgressInput, data)
        key_result, okr = await self._require_key_result(params.key_result_id)
        await self._authorize_okr_edit(Action.UPDATE_PROGRESS, params.user_id, okr)

        with repository_errors("Failed to update key result progress"):
            updated = await self.ctx.key_results.update_progress(
                key_result.id, params.current_value
            )
        logger.info(
            f"Key result {key_result.id} progress {key_result.current_value} -> {updated.current_value}"
        )
        return updated

    @returns_result
    async def delete_key_result(self, data: Payload) -> None:
        params = validate(KeyResultActorInput, data)
        key_result, okr = await self._require_key_result(params.key_result_id)
        await self._authorize_okr_edit(Action.DELETE_KEY_RESULT, params.user_id, okr)

        with repository_errors("Failed to delete key result"):
            await self.ctx.key_results.delete(key_result.id)
        logger.info(f"Key result {key_result.id} deleted by {params.user_id}")
