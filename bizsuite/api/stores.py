"""Process-wide repository singletons shared by the routers.

PostgreSQL-backed when DATABASE_URL is set, in-memory otherwise.
Workforce records belong to the HR modules, which write them to the
same database; dispatch reads them here only to address notifications.
The in-memory workforce repo is filled directly by dev fixtures and tests.
"""

from __future__ import annotations

from bizsuite.db.engine import async_session_factory
from bizsuite.db.redis import redis_pool
from bizsuite.repos.notification_repo import InMemoryNotificationRepo, NotificationRepo
from bizsuite.repos.pg_notification_repo import PgNotificationRepo
from bizsuite.repos.pg_tenant_store import PgTenantStore
from bizsuite.repos.pg_workforce_repo import PgWorkforceRepo
from bizsuite.repos.tenant_store import InMemoryTenantStore, TenantStore
from bizsuite.repos.workforce_repo import InMemoryWorkforceRepo, WorkforceRepo
from bizsuite.services.email_service import build_email_sender
from bizsuite.services.notification_service import NotificationDispatcher
from bizsuite.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimiter,
    RedisRateLimiter,
)

tenant_store: TenantStore
notification_repo: NotificationRepo
workforce_repo: WorkforceRepo

if async_session_factory is not None:
    tenant_store = PgTenantStore(async_session_factory)
    notification_repo = PgNotificationRepo(async_session_factory)
    workforce_repo = PgWorkforceRepo(async_session_factory)
else:
    tenant_store = InMemoryTenantStore()
    notification_repo = InMemoryNotificationRepo()
    workforce_repo = InMemoryWorkforceRepo()

rate_limiter: RateLimiter
if redis_pool is not None:
    rate_limiter = RedisRateLimiter(redis_pool)
else:
    rate_limiter = InMemoryRateLimiter()

dispatcher = NotificationDispatcher(
    workforce=workforce_repo,
    notifications=notification_repo,
    store=tenant_store,
    email_sender=build_email_sender(),
)
