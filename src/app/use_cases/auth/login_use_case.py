"""
Login Use Case

Authenticates a user and opens the single active session for this device.
"""

import bcrypt

from libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sessions import SessionManager, SessionMeta
from src.domain.base import utc_now
from src.domain.entities import UserStatus
from src.api.utils.jwt import generate_jwt
from .dtos import AuthResponse, UserInfo


class LoginUseCase:
    """
    Use case for user login and JWT issuance.

    Business Rules:
    - Login by email or username
    - Constant-time password comparison to prevent timing attacks
    - User must have status=active
    - A session of the user that is still in use elsewhere is terminated
      (CONCURRENT_LOGIN_DETECTED); see SessionManager
    - Updates user.last_login_at
    """

    def __init__(self, uow: UnitOfWork, session_manager: SessionManager):
        self.uow = uow
        self.session_manager = session_manager

    async def execute(
        self, identifier: str, password: str, meta: SessionMeta = None
    ) -> Result[AuthResponse]:
        """
        Execute login use case.

        Args:
            identifier: Email or username
            password: Plain text password
            meta: Client IP and user agent

        Returns:
            Result with AuthResponse containing the JWT and session token, or Error
        """
        async with self.uow:
            user = await self.uow.users.get_by_email(identifier)
            if user is None:
                user = await self.uow.users.get_by_username(identifier)

            # Constant-time password verification (prevent timing attacks)
            # Always perform hash check even if user not found
            if user is None:
                # Hash dummy password to maintain constant time
                bcrypt.checkpw(b"dummy_password", bcrypt.gensalt(12))
                return Return.err(
                    Error("INVALID_CREDENTIALS", "Invalid email or password")
                )

            password_valid = bcrypt.checkpw(
                password.encode(), user.password_hash.encode()
            )

            if not password_valid:
                return Return.err(
                    Error("INVALID_CREDENTIALS", "Invalid email or password")
                )

            if user.status == UserStatus.disabled:
                return Return.err(Error("USER_DISABLED", "User account is disabled"))

            user.last_login_at = utc_now()
            await self.uow.users.update(user)
            await self.uow.commit()

        created = await self.session_manager.create_or_replace_session(user.id, meta)
        if created.is_err():
            return Return.err(created.error)

        session = created.value
        access_token = generate_jwt(user.id, user.subscription_type)

        return Return.ok(
            AuthResponse(
                access_token=access_token,
                session_token=session.session_token,
                session_id=str(session.session_id),
                user=UserInfo(
                    id=str(user.id),
                    email=user.email,
                    username=user.username,
                    subscription_type=user.subscription_type,
                    last_login_at=user.last_login_at,
                ),
                replaced_sessions=session.replaced_sessions,
            )
        )
