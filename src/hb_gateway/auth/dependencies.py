"""FastAPI dependency: require_admin.

Usage in any operator-only router:
    from src.hb_gateway.auth.dependencies import require_admin

    router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])
"""

import secrets
from typing import Annotated

from fastapi import Depends, Header

from src.container import ServiceContainer, get_container
from src.hb_common.errors import AdminKeyRequiredError


async def require_admin(
    container: Annotated[ServiceContainer, Depends(get_container)],
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Raises 403 (AdminKeyRequiredError) unless X-Admin-Key matches ADMIN_API_KEY."""
    expected = container.settings.ADMIN_API_KEY
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise AdminKeyRequiredError()
