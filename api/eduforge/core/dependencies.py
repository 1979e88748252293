"""FastAPI dependencies shared by every router.

Authentication belongs to an external session layer. It forwards the
authenticated learner id in the ``X-User-ID`` header.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from eduforge.core.context import set_user_id


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Read the acting learner id forwarded by the session layer.

    Raises:
        HTTPException 401: If the header is missing or not a UUID
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header",
        )
    try:
        user_id = UUID(x_user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-ID header",
        ) from e
    set_user_id(user_id)
    return user_id


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]


def get_app_service(request, name: str, label: str):
    """Fetch a service set on ``app.state`` during startup.

    Raises:
        HTTPException 503: If the service was not initialized
    """
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service not available",
        )
    return service
