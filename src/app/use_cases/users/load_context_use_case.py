"""
Load Context Use Case

Loads the current user from JWT claims.
"""

from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import UserStatus
from .dtos import CurrentUser


class LoadContextUseCase:
    """
    Use case for loading the authenticated user.

    Business Rules:
    - JWT payload provides user_id
    - User must exist
    - User must have status=active
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: UUID) -> Result[CurrentUser]:
        """
        Execute load context use case.

        Args:
            user_id: User UUID from JWT

        Returns:
            Result with the CurrentUser, or Error
        """
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            if user.status == UserStatus.disabled:
                return Return.err(Error("USER_DISABLED", "User account is disabled"))

            return Return.ok(CurrentUser.model_validate(user))
