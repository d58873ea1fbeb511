"""
Local timezone endpoints.
"""
from fastapi import APIRouter

from ....utils.timezone import get_timezone_info

router = APIRouter()


@router.get("/info")
async def get_local_timezone_info():
    """Timezone used for exam timestamps"""
    return get_timezone_info()
