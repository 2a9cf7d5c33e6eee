from fastapi import APIRouter, Depends, Request, status
from pydantic import AliasChoices, BaseModel, EmailStr, Field

from src.api.error import ClientError, ServerError
from src.api.utils.auth_gate import (
    AuthContext,
    SESSION_ERROR_STATUS,
    require_active_session,
    require_user,
    session_token_from,
)
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import (
    AuthResponse,
    LoginUseCase,
    SignupCommand,
    SignupUseCase,
)
from src.app.use_cases.sessions import (
    HeartbeatResponse,
    LogoutResponse,
    SessionManager,
    SessionMeta,
)
from src.app.use_cases.users import CurrentUser
from src.depends import get_session_manager, get_unit_of_work

router = APIRouter(prefix="/auth", tags=["Authentication"])


def session_meta_from(request: Request) -> SessionMeta:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return SessionMeta(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


def raise_session_error(error) -> None:
    if error.code in SESSION_ERROR_STATUS:
        raise ClientError(error, status_code=SESSION_ERROR_STATUS[error.code])
    raise ServerError(error)


class SignupRequest(BaseModel):
    """
    Signup HTTP request payload

    Validates incoming HTTP request before converting to SignupCommand.
    API layer responsibility: HTTP validation and serialization.
    """

    email: EmailStr = Field(..., description="User email address")
    username: str = Field(
        ..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$", description="Unique username"
    )
    password: str = Field(..., min_length=8, description="User password (min 8 chars)")


@router.post(
    "/register", status_code=status.HTTP_201_CREATED, response_model=AuthResponse
)
async def register(
    request: SignupRequest,
    http_request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    Register a new account and open its first session.

    Raises:
        - 409 Conflict: Email or username already exists
        - 422 Unprocessable Entity: Invalid input (handled by FastAPI)
    """
    command = SignupCommand(
        email=request.email, username=request.username, password=request.password
    )

    use_case = SignupUseCase(uow, session_manager)
    result = await use_case.execute(command, session_meta_from(http_request))

    if result.is_err():
        error = result.error
        if error.code in ("EMAIL_ALREADY_EXISTS", "USERNAME_ALREADY_EXISTS"):
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return result.value


class LoginRequest(BaseModel):
    """Login by email or username"""

    identifier: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identifier", "email", "username"),
        description="Email address or username",
    )
    password: str = Field(..., description="User password")


@router.post("/login", status_code=status.HTTP_200_OK, response_model=AuthResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """
    User Login

    Opens the session for this device, ending the account's session on any
    other device, and returns a JWT plus the session token.

    Raises:
        - 401 Unauthorized: Invalid credentials
        - 403 Forbidden: User disabled
    """
    use_case = LoginUseCase(uow, session_manager)
    result = await use_case.execute(
        request.identifier, request.password, session_meta_from(http_request)
    )

    if result.is_err():
        error = result.error
        if error.code == "INVALID_CREDENTIALS":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "USER_DISABLED":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return result.value


@router.post(
    "/heartbeat", status_code=status.HTTP_200_OK, response_model=HeartbeatResponse
)
async def heartbeat(
    request: Request,
    user: CurrentUser = Depends(require_user),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """Keep the session of an open client alive."""
    result = await session_manager.heartbeat(session_token_from(request), user_id=user.id)
    if result.is_err():
        raise_session_error(result.error)
    return result.value


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=LogoutResponse)
async def logout(
    request: Request,
    user: CurrentUser = Depends(require_user),
    session_manager: SessionManager = Depends(get_session_manager),
):
    result = await session_manager.logout(session_token_from(request), user_id=user.id)
    if result.is_err():
        raise_session_error(result.error)
    return result.value


@router.get("/me", status_code=status.HTTP_200_OK)
async def me(auth: AuthContext = Depends(require_active_session)):
    """Current user and the validated session."""
    return {
        "user": auth.user.model_dump(mode="json", exclude={"status"}),
        "session": auth.session.model_dump(mode="json"),
    }


@router.get("/active-session", status_code=status.HTTP_200_OK)
async def active_session(
    user: CurrentUser = Depends(require_user),
    session_manager: SessionManager = Depends(get_session_manager),
):
    """The account's current active session, if any (e.g. to warn before logging in elsewhere)."""
    result = await session_manager.get_active_session_info(user.id)
    if result.is_err():
        raise ServerError(result.error)

    info = result.value
    return {
        "has_active_session": info is not None,
        "active_session": info.model_dump(mode="json") if info else None,
    }
