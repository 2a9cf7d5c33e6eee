from datetime import timedelta
from uuid import uuid4

import pytest

from src.app.use_cases.sessions import (
    GetOnlineStatsUseCase,
    ListOnlineUsersUseCase,
    SessionMeta,
    hash_token,
)
from src.domain.base import utc_now
from src.domain.entities import LogoutReason, User, UserSession


def backdate(session: UserSession, **delta) -> None:
    """Shift login_at and last_activity into the past"""
    session.login_at -= timedelta(**delta)
    session.last_activity -= timedelta(**delta)


async def open_session(session_manager, user_id, **meta):
    result = await session_manager.create_or_replace_session(user_id, SessionMeta(**meta))
    assert result.is_ok()
    return result.value


@pytest.mark.asyncio
async def test_first_login_creates_single_active_session(session_manager, fake_uow):
    user_id = uuid4()

    created = await open_session(session_manager, user_id, ip_address="203.0.113.10")

    assert created.replaced_sessions == 0
    active = fake_uow.user_sessions.active_for(user_id)
    assert len(active) == 1
    assert active[0].id == created.session_id
    assert active[0].ip_address == "203.0.113.10"
    # Only the hash is stored
    assert active[0].session_token_hash == hash_token(created.session_token)
    assert active[0].session_token_hash != created.session_token
    assert fake_uow.audit_events.events == []


@pytest.mark.asyncio
async def test_device_b_login_terminates_recently_active_device_a(session_manager, fake_uow):
    """Device A logs in, device B logs in 5s later: A's token is terminated, B's works"""
    user_id = uuid4()
    device_a = await open_session(session_manager, user_id, user_agent="device-a")
    backdate(fake_uow.user_sessions.rows[device_a.session_id], seconds=5)

    device_b = await open_session(session_manager, user_id, user_agent="device-b")

    assert device_b.replaced_sessions == 1
    row_a = fake_uow.user_sessions.rows[device_a.session_id]
    assert row_a.is_active is False
    assert row_a.logout_reason == LogoutReason.CONCURRENT_LOGIN_DETECTED
    assert fake_uow.audit_events.actions() == ["concurrent_login"]
    assert fake_uow.audit_events.events[0].event_metadata["previous_user_agent"] == "device-a"

    result_a = await session_manager.validate_session(device_a.session_token)
    assert result_a.is_err()
    assert result_a.error.code == "SESSION_TERMINATED"

    result_b = await session_manager.validate_session(device_b.session_token)
    assert result_b.is_ok()
    assert result_b.value.session_id == device_b.session_id


@pytest.mark.asyncio
async def test_login_after_quiet_period_resolves_old_session_lazily(session_manager, fake_uow):
    user_id = uuid4()
    old = await open_session(session_manager, user_id)
    backdate(fake_uow.user_sessions.rows[old.session_id], minutes=10)

    new = await open_session(session_manager, user_id)

    # Outside the concurrent-login window the old row is left for validation to resolve
    assert new.replaced_sessions == 0
    assert fake_uow.user_sessions.rows[old.session_id].is_active is True

    result = await session_manager.validate_session(old.session_token)
    assert result.is_err()
    assert result.error.code == "SESSION_TERMINATED"
    assert result.error.details == {"reason": "CONCURRENT_LOGIN_DETECTED"}

    row = fake_uow.user_sessions.rows[old.session_id]
    assert row.is_active is False
    assert row.logout_reason == LogoutReason.CONCURRENT_LOGIN_DETECTED
    assert "concurrent_login" in fake_uow.audit_events.actions()

    assert (await session_manager.validate_session(new.session_token)).is_ok()


@pytest.mark.asyncio
async def test_racing_logins_newer_login_wins(session_manager, fake_uow):
    """Two logins both committed an active row; login_at decides"""
    user_id = uuid4()
    now = utc_now()
    older = UserSession(
        user_id=user_id,
        session_token_hash=hash_token("token-older"),
        login_at=now - timedelta(milliseconds=40),
        last_activity=now - timedelta(milliseconds=40),
    )
    newer = UserSession(
        user_id=user_id,
        session_token_hash=hash_token("token-newer"),
        login_at=now - timedelta(milliseconds=20),
        last_activity=now - timedelta(milliseconds=20),
    )
    await fake_uow.user_sessions.create(older)
    await fake_uow.user_sessions.create(newer)

    result = await session_manager.validate_session("token-newer")

    assert result.is_ok()
    assert older.is_active is False
    assert older.logout_reason == LogoutReason.CONCURRENT_LOGIN_DETECTED
    assert [s.id for s in fake_uow.user_sessions.active_for(user_id)] == [newer.id]

    stale = await session_manager.validate_session("token-older")
    assert stale.error.code == "SESSION_TERMINATED"


@pytest.mark.asyncio
async def test_validate_without_token(session_manager):
    for token in (None, ""):
        result = await session_manager.validate_session(token)
        assert result.is_err()
        assert result.error.code == "SESSION_REQUIRED"


@pytest.mark.asyncio
async def test_validate_unknown_token(session_manager):
    result = await session_manager.validate_session("not-a-session")

    assert result.is_err()
    assert result.error.code == "SESSION_INVALID"


@pytest.mark.asyncio
async def test_validate_hands_activity_write_to_tracker(session_manager, fake_uow, tracker):
    user_id = uuid4()
    created = await open_session(session_manager, user_id)

    result = await session_manager.validate_session(created.session_token)

    assert result.is_ok()
    context = result.value
    assert context.user_id == user_id
    assert context.total_api_calls == 1
    assert tracker.tracked == [created.session_id]
    # The write itself is the tracker's job
    assert fake_uow.user_sessions.rows[created.session_id].total_api_calls == 0


@pytest.mark.asyncio
async def test_idle_session_expires_and_stays_expired(session_manager, fake_uow, tracker):
    created = await open_session(session_manager, uuid4())
    backdate(fake_uow.user_sessions.rows[created.session_id], minutes=31)

    result = await session_manager.validate_session(created.session_token)

    assert result.is_err()
    assert result.error.code == "SESSION_EXPIRED"
    assert result.error.details == {"idleTimeoutMinutes": 30}
    row = fake_uow.user_sessions.rows[created.session_id]
    assert row.is_active is False
    assert row.logout_reason == LogoutReason.SESSION_TIMEOUT
    assert tracker.tracked == []

    again = await session_manager.validate_session(created.session_token)
    assert again.error.code == "SESSION_INVALID"


@pytest.mark.asyncio
async def test_session_within_idle_timeout_is_valid(session_manager, fake_uow):
    created = await open_session(session_manager, uuid4())
    backdate(fake_uow.user_sessions.rows[created.session_id], minutes=29)

    result = await session_manager.validate_session(created.session_token)

    assert result.is_ok()


@pytest.mark.asyncio
async def test_heartbeat_refreshes_last_activity(session_manager, fake_uow, tracker):
    created = await open_session(session_manager, uuid4())
    row = fake_uow.user_sessions.rows[created.session_id]
    backdate(row, minutes=10)
    before = row.last_activity

    result = await session_manager.heartbeat(created.session_token)

    assert result.is_ok()
    assert result.value.status == "active"
    assert row.last_activity > before
    assert row.last_activity == result.value.last_activity
    assert tracker.tracked == []


@pytest.mark.asyncio
async def test_heartbeat_does_not_time_out_session(session_manager, fake_uow):
    created = await open_session(session_manager, uuid4())
    backdate(fake_uow.user_sessions.rows[created.session_id], minutes=45)

    result = await session_manager.heartbeat(created.session_token)

    assert result.is_ok()
    assert fake_uow.user_sessions.rows[created.session_id].is_active is True


@pytest.mark.asyncio
async def test_heartbeat_of_superseded_session(session_manager, fake_uow):
    user_id = uuid4()
    old = await open_session(session_manager, user_id)
    backdate(fake_uow.user_sessions.rows[old.session_id], minutes=10)
    await open_session(session_manager, user_id)

    result = await session_manager.heartbeat(old.session_token)

    assert result.is_err()
    assert result.error.code == "SESSION_TERMINATED"
    assert fake_uow.user_sessions.rows[old.session_id].is_active is False


@pytest.mark.asyncio
async def test_logout(session_manager, fake_uow):
    created = await open_session(session_manager, uuid4())

    result = await session_manager.logout(created.session_token)

    assert result.is_ok()
    row = fake_uow.user_sessions.rows[created.session_id]
    assert row.is_active is False
    assert row.logout_reason == LogoutReason.USER_LOGOUT
    assert row.logout_at is not None

    assert (await session_manager.logout(created.session_token)).error.code == "SESSION_INVALID"
    assert (await session_manager.validate_session(created.session_token)).error.code == "SESSION_INVALID"


@pytest.mark.asyncio
async def test_logout_with_session_of_another_user_changes_nothing(session_manager, fake_uow):
    alice, bob = uuid4(), uuid4()
    alice_session = await open_session(session_manager, alice)

    result = await session_manager.logout(alice_session.session_token, user_id=bob)

    assert result.is_err()
    assert result.error.code == "SESSION_INVALID"
    row = fake_uow.user_sessions.rows[alice_session.session_id]
    assert row.is_active is True
    assert row.logout_reason is None
    assert (await session_manager.logout(alice_session.session_token, user_id=alice)).is_ok()


@pytest.mark.asyncio
async def test_heartbeat_with_session_of_another_user_changes_nothing(session_manager, fake_uow):
    alice_session = await open_session(session_manager, uuid4())
    row = fake_uow.user_sessions.rows[alice_session.session_id]
    backdate(row, minutes=10)
    before = row.last_activity

    result = await session_manager.heartbeat(alice_session.session_token, user_id=uuid4())

    assert result.error.code == "SESSION_INVALID"
    assert row.last_activity == before
    assert row.is_active is True


@pytest.mark.asyncio
async def test_validate_with_session_of_another_user_changes_nothing(
    session_manager, fake_uow, tracker
):
    alice = uuid4()
    older = await open_session(session_manager, alice)
    backdate(fake_uow.user_sessions.rows[older.session_id], minutes=10)
    # Racing login that skipped the concurrent check
    newer = UserSession(
        user_id=alice,
        session_token_hash=hash_token("token-alice-newer"),
        login_at=utc_now(),
        last_activity=utc_now(),
    )
    await fake_uow.user_sessions.create(newer)

    result = await session_manager.validate_session("token-alice-newer", user_id=uuid4())

    assert result.error.code == "SESSION_INVALID"
    assert tracker.tracked == []
    assert fake_uow.user_sessions.rows[older.session_id].is_active is True


@pytest.mark.asyncio
async def test_force_logout_all(session_manager, fake_uow):
    user_id = uuid4()
    other_user_id = uuid4()
    first = await open_session(session_manager, user_id)
    backdate(fake_uow.user_sessions.rows[first.session_id], minutes=10)
    await open_session(session_manager, user_id)
    bystander = await open_session(session_manager, other_user_id)

    result = await session_manager.force_logout_all(user_id, actor="ops")

    assert result.is_ok()
    assert result.value.terminated_sessions == 2
    assert fake_uow.user_sessions.active_for(user_id) == []
    assert fake_uow.user_sessions.rows[bystander.session_id].is_active is True
    reasons = {s.logout_reason for s in fake_uow.user_sessions.rows.values() if s.user_id == user_id}
    assert reasons == {LogoutReason.ADMIN_FORCE_LOGOUT}

    event = fake_uow.audit_events.events[-1]
    assert event.action == "force_logout_all"
    assert event.actor == "ops"
    assert event.event_metadata["terminated_sessions"] == 2


@pytest.mark.asyncio
async def test_get_active_session_info(session_manager, fake_uow):
    user_id = uuid4()
    assert (await session_manager.get_active_session_info(user_id)).value is None

    created = await open_session(session_manager, user_id, user_agent="device-a")

    info = (await session_manager.get_active_session_info(user_id)).value
    assert info.session_id == created.session_id
    assert info.user_agent == "device-a"


@pytest.mark.asyncio
async def test_get_active_session_info_times_out_idle_session(session_manager, fake_uow):
    user_id = uuid4()
    created = await open_session(session_manager, user_id)
    backdate(fake_uow.user_sessions.rows[created.session_id], hours=2)

    assert (await session_manager.get_active_session_info(user_id)).value is None
    row = fake_uow.user_sessions.rows[created.session_id]
    assert row.logout_reason == LogoutReason.SESSION_TIMEOUT


@pytest.mark.asyncio
async def test_cleanup_expired_purges_old_inactive_sessions(session_manager, fake_uow):
    user_id = uuid4()
    stale = await open_session(session_manager, user_id)
    await session_manager.logout(stale.session_token)
    backdate(fake_uow.user_sessions.rows[stale.session_id], hours=25)

    recent = await open_session(session_manager, user_id)
    await session_manager.logout(recent.session_token)

    active = await open_session(session_manager, uuid4())
    backdate(fake_uow.user_sessions.rows[active.session_id], hours=25)

    result = await session_manager.cleanup_expired()

    assert result.value == 1
    assert stale.session_id not in fake_uow.user_sessions.rows
    assert recent.session_id in fake_uow.user_sessions.rows
    assert active.session_id in fake_uow.user_sessions.rows


async def registered(fake_uow, name, subscription_type="free") -> User:
    return await fake_uow.users.create(
        User(
            email=f"{name}@example.com",
            username=name,
            password_hash="x" * 60,
            subscription_type=subscription_type,
        )
    )


@pytest.mark.asyncio
async def test_online_users_within_window(session_manager, fake_uow):
    alice = await registered(fake_uow, "alice")
    bob = await registered(fake_uow, "bob", subscription_type="monthly")
    carol = await registered(fake_uow, "carol")
    await open_session(session_manager, alice.id)
    bob_session = await open_session(session_manager, bob.id)
    backdate(fake_uow.user_sessions.rows[bob_session.session_id], minutes=2)
    carol_session = await open_session(session_manager, carol.id)
    backdate(fake_uow.user_sessions.rows[carol_session.session_id], minutes=20)

    result = (await ListOnlineUsersUseCase(fake_uow).execute(window_minutes=5)).value

    assert [u.username for u in result.online_users] == ["alice", "bob"]
    assert result.stats.total_online == 2
    assert result.stats.total_sessions == 2
    assert result.stats.by_subscription == {"free": 1, "monthly": 1}
    assert result.stats.average_session_minutes == 1


@pytest.mark.asyncio
async def test_online_stats_by_recency(session_manager, fake_uow):
    recent, hour, day, ended = [await registered(fake_uow, n) for n in ("a", "b", "c", "d")]
    await open_session(session_manager, recent.id)
    for user, minutes in ((hour, 30), (day, 300)):
        created = await open_session(session_manager, user.id)
        backdate(fake_uow.user_sessions.rows[created.session_id], minutes=minutes)
    ended_session = await open_session(session_manager, ended.id)
    await session_manager.logout(ended_session.session_token)

    stats = (await GetOnlineStatsUseCase(fake_uow).execute()).value

    assert stats.current_online == 1
    assert stats.active_last_hour == 2
    assert stats.active_last_24_hours == 3
    assert stats.avg_session_duration_minutes == 110
