import logging

import bcrypt
from libs.result import Error, Result, Return

from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sessions import SessionManager, SessionMeta
from .dtos import AuthResponse, SignupCommand, UserInfo
from src.domain.entities import User

logger = logging.getLogger(__name__)


class SignupUseCase:
    """
    Signup Use Case

    Command/Response Pattern:
    - Input: SignupCommand (validated business intent)
    - Output: Result[AuthResponse] (structured response)

    Business Logic:
    1. Reject duplicate email or username
    2. Hash password with bcrypt cost factor 12
    3. Create User on the free tier
    4. Open the user's first session through the SessionManager
    5. Return JWT and session token
    """

    def __init__(self, uow: UnitOfWork, session_manager: SessionManager):
        self.uow = uow
        self.session_manager = session_manager

    async def execute(
        self, command: SignupCommand, meta: SessionMeta = None
    ) -> Result[AuthResponse]:
        """
        Execute signup use case

        Args:
            command: SignupCommand with validated email, username, password
            meta: Client IP and user agent for the first session

        Returns:
            Result[AuthResponse] or Error(EMAIL_ALREADY_EXISTS | USERNAME_ALREADY_EXISTS)
        """
        async with self.uow:
            if await self.uow.users.get_by_email(command.email):
                return Return.err(
                    Error("EMAIL_ALREADY_EXISTS", "Email already registered")
                )

            if await self.uow.users.get_by_username(command.username):
                return Return.err(
                    Error("USERNAME_ALREADY_EXISTS", "Username already taken")
                )

            # Hash password with bcrypt cost factor 12 (security requirement)
            password_hash = bcrypt.hashpw(
                command.password.encode("utf-8"), bcrypt.gensalt(12)
            )

            user = User(
                email=command.email,
                username=command.username,
                password_hash=password_hash.decode("utf-8"),
            )
            user = await self.uow.users.create(user)
            await self.uow.commit()

        logger.info(f"User {user.id} registered")

        created = await self.session_manager.create_or_replace_session(user.id, meta)
        if created.is_err():
            return Return.err(created.error)

        # Import JWT utility here to avoid circular dependency
        from src.api.utils.jwt import generate_jwt

        session = created.value
        return Return.ok(
            AuthResponse(
                access_token=generate_jwt(user.id, user.subscription_type),
                session_token=session.session_token,
                session_id=str(session.session_id),
                user=UserInfo(
                    id=str(user.id),
                    email=user.email,
                    username=user.username,
                    subscription_type=user.subscription_type,
                ),
            )
        )
