from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import Float, case, cast, delete, func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.daily_usage_repository import IDailyUsageRepository
from src.domain.entities import DailyUsageLimit, ModuleUsage, User


class DailyUsageRepository(IDailyUsageRepository):
    """DailyUsageLimit repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_day(self, user_id: UUID, usage_date: date) -> Optional[DailyUsageLimit]:
        stmt = select(DailyUsageLimit).where(
            DailyUsageLimit.user_id == user_id,
            DailyUsageLimit.usage_date == usage_date,
        ).execution_options(populate_existing=True)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, usage: DailyUsageLimit) -> DailyUsageLimit:
        self.session.add(usage)
        await self.session.flush()
        await self.session.refresh(usage)
        return usage

    async def get_or_create(self, usage: DailyUsageLimit) -> DailyUsageLimit:
        self.session.add(usage)
        try:
            await self.session.flush()
        except IntegrityError:
            # Lost the race on idx_daily_usage_user_date
            await self.session.rollback()
            existing = await self.get_for_day(usage.user_id, usage.usage_date)
            if existing is None:
                raise
            return existing
        await self.session.refresh(usage)
        return usage

    async def update(self, usage: DailyUsageLimit) -> DailyUsageLimit:
        self.session.add(usage)
        await self.session.flush()
        await self.session.refresh(usage)
        return usage

    async def add_usage(
        self,
        usage: DailyUsageLimit,
        module_id: str,
        module_name: str,
        weight: int,
        at: datetime,
    ) -> DailyUsageLimit:
        # Pending burst/warning changes must reach the row before the increments
        self.session.add(usage)
        await self.session.flush()

        await self.session.execute(
            update(DailyUsageLimit)
            .where(DailyUsageLimit.id == usage.id)
            .values(total_usage=DailyUsageLimit.total_usage + weight, last_activity=at)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(
            update(ModuleUsage)
            .where(
                ModuleUsage.daily_usage_id == usage.id,
                ModuleUsage.module_id == module_id,
            )
            .values(
                request_count=ModuleUsage.request_count + 1,
                weighted_usage=ModuleUsage.weighted_usage + weight,
                module_name=module_name,
                last_used=at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.add(
                ModuleUsage(
                    daily_usage_id=usage.id,
                    module_id=module_id,
                    module_name=module_name,
                    request_count=1,
                    weighted_usage=weight,
                    last_used=at,
                )
            )

        await self.session.flush()
        await self.session.refresh(usage)
        return usage

    async def get_module_usage(self, usage_id: UUID) -> List[ModuleUsage]:
        stmt = (
            select(ModuleUsage)
            .where(ModuleUsage.daily_usage_id == usage_id)
            .order_by(ModuleUsage.weighted_usage.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def delete_before(self, cutoff: date) -> int:
        expired_ids = select(DailyUsageLimit.id).where(DailyUsageLimit.usage_date < cutoff)
        await self.session.execute(
            delete(ModuleUsage).where(ModuleUsage.daily_usage_id.in_(expired_ids))
        )
        result = await self.session.execute(
            delete(DailyUsageLimit).where(DailyUsageLimit.usage_date < cutoff)
        )
        await self.session.flush()
        return result.rowcount

    async def get_heavy_users(self, since: date, threshold: float) -> List[Dict[str, Any]]:
        ratio = case(
            (
                DailyUsageLimit.daily_limit > 0,
                cast(DailyUsageLimit.total_usage, Float) / DailyUsageLimit.daily_limit,
            ),
            else_=0.0,
        )
        exceeded = case(
            (DailyUsageLimit.total_usage >= DailyUsageLimit.daily_limit, 1), else_=0
        )
        avg_ratio = func.avg(ratio)

        stmt = (
            select(
                DailyUsageLimit.user_id,
                User.email,
                User.username,
                User.subscription_type,
                avg_ratio.label("avg_usage_ratio"),
                func.count(DailyUsageLimit.id).label("total_days"),
                func.sum(DailyUsageLimit.total_usage).label("total_usage"),
                func.sum(exceeded).label("days_exceeded_limit"),
            )
            .join(User, User.id == DailyUsageLimit.user_id)
            .where(DailyUsageLimit.usage_date >= since)
            .group_by(
                DailyUsageLimit.user_id, User.email, User.username, User.subscription_type
            )
            .having(avg_ratio >= threshold)
            .order_by(avg_ratio.desc())
        )
        result = await self.session.execute(stmt)
        return [
            {
                "user_id": str(row.user_id),
                "email": row.email,
                "username": row.username,
                "subscription_type": row.subscription_type,
                "avg_usage_ratio": round(float(row.avg_usage_ratio), 4),
                "total_days": row.total_days,
                "total_usage": int(row.total_usage or 0),
                "days_exceeded_limit": int(row.days_exceeded_limit or 0),
            }
            for row in result.all()
        ]

    async def get_daily_stats(self, since: date, until: date) -> List[Dict[str, Any]]:
        blocked = case((DailyUsageLimit.is_blocked == True, 1), else_=0)
        exceeded = case(
            (DailyUsageLimit.total_usage >= DailyUsageLimit.daily_limit, 1), else_=0
        )
        stmt = (
            select(
                DailyUsageLimit.usage_date,
                func.count(DailyUsageLimit.id).label("total_users"),
                func.sum(DailyUsageLimit.total_usage).label("total_usage"),
                func.avg(DailyUsageLimit.total_usage).label("avg_usage"),
                func.sum(blocked).label("blocked_users"),
                func.sum(exceeded).label("exceeded_limit_users"),
            )
            .where(DailyUsageLimit.usage_date >= since, DailyUsageLimit.usage_date <= until)
            .group_by(DailyUsageLimit.usage_date)
            .order_by(DailyUsageLimit.usage_date.desc())
        )
        result = await self.session.execute(stmt)
        return [
            {
                "date": row.usage_date.isoformat(),
                "total_users": row.total_users,
                "total_usage": int(row.total_usage or 0),
                "avg_usage": round(float(row.avg_usage or 0), 2),
                "blocked_users": int(row.blocked_users or 0),
                "exceeded_limit_users": int(row.exceeded_limit_users or 0),
            }
            for row in result.all()
        ]

    async def list_for_user(self, user_id: UUID, since: date, until: date) -> List[DailyUsageLimit]:
        stmt = (
            select(DailyUsageLimit)
            .where(
                DailyUsageLimit.user_id == user_id,
                DailyUsageLimit.usage_date >= since,
                DailyUsageLimit.usage_date <= until,
            )
            .order_by(DailyUsageLimit.usage_date.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def get_module_stats(self, since: date, until: date) -> List[Dict[str, Any]]:
        total_requests = func.sum(ModuleUsage.request_count)
        stmt = (
            select(
                ModuleUsage.module_id,
                func.max(ModuleUsage.module_name).label("module_name"),
                total_requests.label("total_requests"),
                func.sum(ModuleUsage.weighted_usage).label("total_weighted_usage"),
                func.count(func.distinct(DailyUsageLimit.user_id)).label("unique_users"),
                func.avg(ModuleUsage.request_count).label("avg_requests_per_user"),
            )
            .join(DailyUsageLimit, DailyUsageLimit.id == ModuleUsage.daily_usage_id)
            .where(DailyUsageLimit.usage_date >= since, DailyUsageLimit.usage_date <= until)
            .group_by(ModuleUsage.module_id)
            .order_by(total_requests.desc(), ModuleUsage.module_id)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "module_id": row.module_id,
                "module_name": row.module_name,
                "total_requests": int(row.total_requests or 0),
                "total_weighted_usage": int(row.total_weighted_usage or 0),
                "unique_users": row.unique_users,
                "avg_requests_per_user": round(float(row.avg_requests_per_user or 0), 2),
            }
            for row in result.all()
        ]
