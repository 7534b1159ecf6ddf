"""
Waterfall Manager Backend — Route Dependencies
===============================================

What:  FastAPI dependencies shared by the route modules.
How:   `get_current_identity` reads the Authorization header through
       HTTPBearer and hands the token to the TokenAuthenticator that
       create_app() stored on `app.state`.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.exceptions import AuthenticationError
from app.services.auth_service import Identity, TokenAuthenticator

# auto_error=False: missing credentials become our AuthenticationError (401
# with the standard error body) instead of FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_authenticator(request: Request) -> TokenAuthenticator:
    return request.app.state.authenticator


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    authenticator: TokenAuthenticator = Depends(get_authenticator),
) -> Identity:
    """Authenticated caller for this request; 401 when absent or invalid."""
    if credentials is None:
        raise AuthenticationError("No bearer token supplied")
    return authenticator.authenticate(credentials.credentials)
