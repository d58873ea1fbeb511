from examroom.core.celery_app import celery_app
from examroom.core.config import settings
from examroom.core.database import AsyncSessionLocal
from examroom.core.cache import cache
from examroom.services.session_store import SessionStore
from examroom.utils.timezone import get_local_now
from sqlalchemy import select
import asyncio
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="expire_abandoned_sessions")
def expire_abandoned_sessions():
    """Mark in-progress sessions whose device went silent past their remaining time as expired"""
    try:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        try:
            return loop.run_until_complete(_expire_sessions_internal(AsyncSessionLocal))
        finally:
            loop.close()

    except Exception as exc:
        logger.error(f"Error in expire_abandoned_sessions: {exc}")
        raise exc


async def _expire_sessions_internal(session_factory, grace_seconds: int = None, now=None):
    grace_seconds = settings.abandoned_session_grace_seconds if grace_seconds is None else grace_seconds
    store = SessionStore(session_factory, cache=cache)
    expired = await store.expire_abandoned_sessions(grace_seconds, now=now)
    if expired:
        logger.info(f"Expired {len(expired)} abandoned exam sessions")
    return {
        'expired_sessions': expired,
        'total_expired': len(expired),
    }


@celery_app.task(name="health_check")
def health_check():
    """Check cache, database and host resources"""
    health_status = {
        'timestamp': get_local_now().isoformat(),
        'cache': False,
        'database': False,
        'memory_usage': None,
    }

    async def check_services():
        health_status['cache'] = await cache.ahealth_check()
        async with AsyncSessionLocal() as db:
            await db.execute(select(1))
        health_status['database'] = True

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(check_services())
    except Exception as e:
        logger.error(f"Health check failed: {e}")
    finally:
        loop.close()

    try:
        import psutil
        memory = psutil.virtual_memory()
        health_status['memory_usage'] = {
            'total_gb': round(memory.total / (1024**3), 2),
            'available_gb': round(memory.available / (1024**3), 2),
            'usage_percent': memory.percent
        }
    except Exception as e:
        logger.error(f"Memory usage check failed: {e}")

    if not health_status['database']:
        logger.warning(f"Unhealthy services: {health_status}")
    return health_status
