from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pix_provider.errors import InvalidTokenError, MissingTokenError

bearer_scheme = HTTPBearer(auto_error=False)


async def require_api_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Static bearer-token check. Without a configured API_TOKEN every request passes."""
    api_token = request.app.state.settings.api_token
    if not api_token:
        return

    if not credentials:
        raise MissingTokenError()
    if credentials.credentials != api_token:
        raise InvalidTokenError()
