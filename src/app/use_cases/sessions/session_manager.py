"""
Session Manager

Single-active-session enforcement, concurrent-login detection, idle timeout
and heartbeat liveness.

Expiry is observed lazily at access time: nothing is pushed by timers, and
every termination is a conditional update on is_active=True so concurrent
requests cannot resurrect or double-terminate a session.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID

from config import ApplicationConfig
from libs.result import Error, Result, Return
from src.app.services.activity_tracker import ActivityTracker
from src.app.services.audit_trail import AuditTrail
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.entities import LogoutReason, UserSession
from .dtos import (
    ActiveSessionInfo,
    CreatedSession,
    ForceLogoutResponse,
    HeartbeatResponse,
    LogoutResponse,
    SessionContext,
    SessionMeta,
)

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class SessionManager:
    """
    Business Rules:
    - A login while another session of the user was active within the
      concurrent-login window terminates every active session of the user
      (CONCURRENT_LOGIN_DETECTED, audit-logged); exactly one new session is
      created either way
    - A session whose user has a strictly newer active session is terminated
      when it is next presented; the newer one wins
    - A session idle for more than the idle timeout is terminated
      (SESSION_TIMEOUT) when it is next presented
    - A token of a session that lost to a newer login keeps answering
      SESSION_TERMINATED, so the client can tell "another device took over"
      from "log in again"
    - Heartbeats refresh last_activity without timing the session out
    - Inactive sessions are purged after the retention window
    """

    def __init__(
        self,
        uow: UnitOfWork,
        activity_tracker: ActivityTracker,
        audit_trail: AuditTrail,
        idle_timeout: timedelta = timedelta(minutes=ApplicationConfig.SESSION_IDLE_TIMEOUT_MINUTES),
        concurrent_window: timedelta = timedelta(minutes=ApplicationConfig.CONCURRENT_LOGIN_WINDOW_MINUTES),
        retention: timedelta = timedelta(hours=ApplicationConfig.SESSION_RETENTION_HOURS),
    ):
        self.uow = uow
        self.activity_tracker = activity_tracker
        self.audit_trail = audit_trail
        self.idle_timeout = idle_timeout
        self.concurrent_window = concurrent_window
        self.retention = retention

    async def create_or_replace_session(
        self, user_id: UUID, meta: Optional[SessionMeta] = None
    ) -> Result[CreatedSession]:
        """
        Create a new active session for the user.

        Two logins of the same user racing through here can both insert a
        row; validate_session resolves that by login_at on the next request.
        """
        meta = meta or SessionMeta()
        now = utc_now()

        async with self.uow:
            # Most recent activity first
            active = await self.uow.user_sessions.get_active_by_user_id(user_id)
            previous = active[0] if active else None
            concurrent = previous is not None and now - previous.last_activity < self.concurrent_window

            replaced = 0
            if concurrent:
                replaced = await self.uow.user_sessions.deactivate_all_by_user_id(
                    user_id, LogoutReason.CONCURRENT_LOGIN_DETECTED, now
                )

            token = secrets.token_urlsafe(32)
            session = UserSession(
                user_id=user_id,
                session_token_hash=hash_token(token),
                ip_address=meta.ip_address,
                user_agent=meta.user_agent,
                login_at=now,
                last_activity=now,
            )
            await self.uow.user_sessions.create(session)
            await self.uow.commit()

        if concurrent:
            logger.info(f"Concurrent login for user {user_id}, {replaced} session(s) terminated")
            await self.audit_trail.record(
                "concurrent_login",
                f"Logged in from a new location, previous session terminated "
                f"(active {int((now - previous.last_activity).total_seconds())}s ago)",
                user_id=user_id,
                metadata={
                    "previous_session_id": str(previous.id),
                    "previous_ip": previous.ip_address,
                    "previous_user_agent": previous.user_agent,
                    "new_session_id": str(session.id),
                    "new_ip": meta.ip_address,
                    "new_user_agent": meta.user_agent,
                    "terminated_sessions": replaced,
                },
            )

        return Return.ok(
            CreatedSession(
                session_id=session.id,
                session_token=token,
                login_at=now,
                replaced_sessions=replaced,
            )
        )

    async def validate_session(
        self, token: Optional[str], user_id: Optional[UUID] = None
    ) -> Result[SessionContext]:
        """
        Validate a session token presented with a request.

        When user_id is given the session must belong to that user; a
        mismatch is rejected before the session is touched.

        On success the activity write is handed to the ActivityTracker and the
        returned context reflects it; the request does not wait for it.

        Errors:
            - SESSION_REQUIRED: no token
            - SESSION_INVALID: no active session for the token, or owned by
              another user
            - SESSION_EXPIRED: idle for longer than the idle timeout
            - SESSION_TERMINATED: a newer login of the same user exists
        """
        if not token:
            return Return.err(Error("SESSION_REQUIRED", "Session token is required"))

        now = utc_now()

        async with self.uow:
            session, error = await self._find_active(token, user_id)
            if error:
                return Return.err(error)

            if session.idle_for(now) > self.idle_timeout:
                await self.uow.user_sessions.deactivate(
                    session.id, LogoutReason.SESSION_TIMEOUT, now
                )
                await self.uow.commit()
                logger.info(f"Session {session.id} of user {session.user_id} timed out")
                return Return.err(
                    Error(
                        "SESSION_EXPIRED",
                        "Session expired due to inactivity. Please log in again.",
                        {"idleTimeoutMinutes": int(self.idle_timeout.total_seconds() // 60)},
                    )
                )

            superseded = await self._terminate_if_superseded(session, now)
            if not superseded:
                # This session is the newest; terminate any racing older login
                await self.uow.user_sessions.deactivate_older(
                    session.user_id,
                    session.login_at,
                    LogoutReason.CONCURRENT_LOGIN_DETECTED,
                    now,
                )
            await self.uow.commit()

        if superseded:
            await self._audit_superseded(session)
            return Return.err(self._terminated_error())

        self.activity_tracker.track(session.id)

        return Return.ok(
            SessionContext(
                session_id=session.id,
                user_id=session.user_id,
                login_at=session.login_at,
                last_activity=now,
                total_api_calls=session.total_api_calls + 1,
            )
        )

    async def heartbeat(
        self, token: Optional[str], user_id: Optional[UUID] = None
    ) -> Result[HeartbeatResponse]:
        """Liveness ping from an open client; refreshes last_activity synchronously."""
        if not token:
            return Return.err(Error("SESSION_REQUIRED", "Session token is required"))

        now = utc_now()

        async with self.uow:
            session, error = await self._find_active(token, user_id)
            if error:
                return Return.err(error)

            superseded = await self._terminate_if_superseded(session, now)
            if not superseded:
                await self.uow.user_sessions.touch(session.id, now)
            await self.uow.commit()

        if superseded:
            await self._audit_superseded(session)
            return Return.err(self._terminated_error())

        return Return.ok(
            HeartbeatResponse(status="active", session_id=session.id, last_activity=now)
        )

    async def logout(
        self, token: Optional[str], user_id: Optional[UUID] = None
    ) -> Result[LogoutResponse]:
        if not token:
            return Return.err(Error("SESSION_REQUIRED", "Session token is required"))

        async with self.uow:
            session, error = await self._find_active(token, user_id)
            if error:
                return Return.err(error)

            await self.uow.user_sessions.deactivate(
                session.id, LogoutReason.USER_LOGOUT, utc_now()
            )
            await self.uow.commit()

        logger.info(f"User {session.user_id} logged out of session {session.id}")
        return Return.ok(LogoutResponse(status="success", message="Logged out"))

    async def force_logout_all(
        self,
        user_id: UUID,
        reason: LogoutReason = LogoutReason.ADMIN_FORCE_LOGOUT,
        actor: str = "admin",
    ) -> Result[ForceLogoutResponse]:
        async with self.uow:
            count = await self.uow.user_sessions.deactivate_all_by_user_id(
                user_id, reason, utc_now()
            )
            await self.uow.commit()

        await self.audit_trail.record(
            "force_logout_all",
            f"{count} active session(s) terminated",
            user_id=user_id,
            actor=actor,
            metadata={"reason": reason.value, "terminated_sessions": count},
        )
        return Return.ok(ForceLogoutResponse(user_id=user_id, terminated_sessions=count))

    async def get_active_session_info(self, user_id: UUID) -> Result[Optional[ActiveSessionInfo]]:
        """Most recent active session of a user, or None. Idle sessions are timed out on read."""
        now = utc_now()

        async with self.uow:
            sessions = await self.uow.user_sessions.get_active_by_user_id(user_id)
            if not sessions:
                return Return.ok(None)

            session = sessions[0]
            if session.idle_for(now) > self.idle_timeout:
                await self.uow.user_sessions.deactivate(
                    session.id, LogoutReason.SESSION_TIMEOUT, now
                )
                await self.uow.commit()
                return Return.ok(None)

            return Return.ok(
                ActiveSessionInfo(
                    session_id=session.id,
                    ip_address=session.ip_address,
                    user_agent=session.user_agent,
                    login_at=session.login_at,
                    last_activity=session.last_activity,
                    total_api_calls=session.total_api_calls,
                )
            )

    async def cleanup_expired(self) -> Result[int]:
        """Purge inactive sessions idle for longer than the retention window."""
        cutoff = utc_now() - self.retention

        async with self.uow:
            deleted = await self.uow.user_sessions.delete_inactive_before(cutoff)
            await self.uow.commit()

        if deleted:
            logger.info(f"Purged {deleted} inactive session(s) older than {cutoff.isoformat()}")
        return Return.ok(deleted)

    async def _find_active(
        self, token: str, owner: Optional[UUID] = None
    ) -> Tuple[Optional[UserSession], Optional[Error]]:
        session = await self.uow.user_sessions.get_by_token_hash(hash_token(token))
        if session is None:
            return None, Error("SESSION_INVALID", "Session is invalid or has been terminated")

        if owner is not None and session.user_id != owner:
            return None, Error(
                "SESSION_INVALID", "Session does not belong to the authenticated user"
            )

        if not session.is_active:
            if session.logout_reason == LogoutReason.CONCURRENT_LOGIN_DETECTED:
                return None, self._terminated_error()
            return None, Error("SESSION_INVALID", "Session is invalid or has been terminated")

        return session, None

    async def _terminate_if_superseded(self, session: UserSession, now: datetime) -> bool:
        if not await self.uow.user_sessions.has_newer_active(session.user_id, session.login_at):
            return False
        await self.uow.user_sessions.deactivate(
            session.id, LogoutReason.CONCURRENT_LOGIN_DETECTED, now
        )
        return True

    async def _audit_superseded(self, session: UserSession) -> None:
        await self.audit_trail.record(
            "concurrent_login",
            "Session presented after a newer login of the same account, terminated",
            user_id=session.user_id,
            metadata={
                "session_id": str(session.id),
                "ip": session.ip_address,
                "user_agent": session.user_agent,
            },
        )

    @staticmethod
    def _terminated_error() -> Error:
        return Error(
            "SESSION_TERMINATED",
            "Your account was logged in from another device. This session has been ended.",
            {"reason": LogoutReason.CONCURRENT_LOGIN_DETECTED.value},
        )
