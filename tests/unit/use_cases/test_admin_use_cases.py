from uuid import uuid4

import pytest

from src.app.use_cases.admin import (
    BlockUserUseCase,
    ExemptUserUseCase,
    GetRateLimitConfigUseCase,
    UpdateRateLimitConfigCommand,
    UpdateRateLimitConfigUseCase,
)
from src.app.use_cases.audit import ListAuditEventsUseCase
from src.domain.base import local_today
from src.domain.entities import BurstSettings, WarningThreshold


@pytest.mark.asyncio
async def test_get_config_creates_defaults(fake_uow, config_provider):
    config = (await GetRateLimitConfigUseCase(fake_uow, config_provider).execute()).value

    assert config.version == 1
    assert config.timezone == "Asia/Ho_Chi_Minh"
    assert [m.module_id for m in config.restricted_modules][:2] == ["write-story", "batch-story-writing"]
    assert fake_uow.rate_limit_configs.config is not None


@pytest.mark.asyncio
async def test_update_config_merges_and_bumps_version(fake_uow, config_provider, audit_trail):
    await config_provider.get(fake_uow)
    command = UpdateRateLimitConfigCommand(
        daily_limit=120, burst=BurstSettings(is_enabled=True, burst_limit=10)
    )

    result = await UpdateRateLimitConfigUseCase(fake_uow, config_provider, audit_trail).execute(
        command, updated_by="ops"
    )

    assert result.is_ok()
    config = result.value
    assert config.daily_limit == 120
    assert config.burst.is_enabled is True
    # Untouched fields keep their value
    assert config.timezone == "Asia/Ho_Chi_Minh"
    assert len(config.warning_thresholds) == 3
    assert config.version == 2
    assert config.last_updated_by == "ops"

    assert (await config_provider.get(fake_uow)).daily_limit == 120
    event = fake_uow.audit_events.events[-1]
    assert event.action == "rate_limit_config_updated"
    assert event.event_metadata["changed_fields"] == ["burst", "daily_limit"]


@pytest.mark.asyncio
async def test_update_config_rejects_unknown_timezone(fake_uow, config_provider, audit_trail):
    command = UpdateRateLimitConfigCommand(timezone="Mars/Olympus_Mons")

    result = await UpdateRateLimitConfigUseCase(fake_uow, config_provider, audit_trail).execute(command)

    assert result.error.code == "INVALID_CONFIG"
    assert fake_uow.audit_events.events == []


@pytest.mark.asyncio
async def test_update_config_can_disable_thresholds(fake_uow, config_provider, audit_trail):
    command = UpdateRateLimitConfigCommand(
        warning_thresholds=[WarningThreshold(percentage=80, message="80%", is_active=False)]
    )

    config = (
        await UpdateRateLimitConfigUseCase(fake_uow, config_provider, audit_trail).execute(command)
    ).value

    assert [t.is_active for t in config.warning_thresholds] == [False]


@pytest.mark.asyncio
async def test_block_and_unblock_user(fake_uow, config_provider, audit_trail, user):
    use_case = BlockUserUseCase(fake_uow, config_provider, audit_trail)

    blocked = (await use_case.execute(user.id, True, "Account sharing", actor="ops")).value

    assert blocked.is_blocked is True
    assert blocked.block_reason == "Account sharing"
    usage = await fake_uow.daily_usage.get_for_day(user.id, local_today("Asia/Ho_Chi_Minh"))
    assert usage.is_blocked is True
    assert usage.blocked_at is not None
    assert usage.daily_limit == 50

    unblocked = (await use_case.execute(user.id, False, actor="ops")).value

    assert unblocked.is_blocked is False
    assert unblocked.block_reason is None
    assert usage.blocked_at is None
    assert fake_uow.audit_events.actions() == ["account_blocked", "account_unblocked"]


@pytest.mark.asyncio
async def test_block_unknown_user(fake_uow, config_provider, audit_trail):
    result = await BlockUserUseCase(fake_uow, config_provider, audit_trail).execute(uuid4(), True)

    assert result.error.code == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_exempt_and_unexempt_user(fake_uow, config_provider, audit_trail, user):
    use_case = ExemptUserUseCase(fake_uow, config_provider, audit_trail)
    assert (await config_provider.get(fake_uow)).effective_daily_limit(user.id, "free") == 50

    exempted = (await use_case.execute(user.id, True, "Beta tester", actor="ops")).value

    assert exempted.is_exempt is True
    assert exempted.changed is True
    assert exempted.version == 2
    config = fake_uow.rate_limit_configs.config
    assert config.exempted_user_ids == [str(user.id)]
    assert config.last_updated_by == "ops"
    assert (await config_provider.get(fake_uow)).effective_daily_limit(user.id, "free") is None

    # Already exempt: nothing to write
    again = (await use_case.execute(user.id, True, actor="ops")).value
    assert again.changed is False
    assert again.version == 2

    revoked = (await use_case.execute(user.id, False, actor="ops")).value

    assert revoked.is_exempt is False
    assert revoked.version == 3
    assert fake_uow.rate_limit_configs.config.exempted_user_ids == []
    assert fake_uow.audit_events.actions() == [
        "rate_limit_exemption_granted",
        "rate_limit_exemption_revoked",
    ]
    assert fake_uow.audit_events.events[0].description == "Beta tester"


@pytest.mark.asyncio
async def test_exempt_unknown_user(fake_uow, config_provider, audit_trail):
    result = await ExemptUserUseCase(fake_uow, config_provider, audit_trail).execute(uuid4())

    assert result.error.code == "USER_NOT_FOUND"
    assert fake_uow.rate_limit_configs.config is None


@pytest.mark.asyncio
async def test_list_audit_events_filters_by_action(fake_uow, audit_trail):
    await audit_trail.record("concurrent_login", "first")
    await audit_trail.record("force_logout_all", "second")
    await audit_trail.record("concurrent_login", "third")

    events = (await ListAuditEventsUseCase(fake_uow).execute(action="concurrent_login")).value["events"]

    assert [e["description"] for e in events] == ["third", "first"]
    assert events[0]["timestamp"].endswith("Z")
