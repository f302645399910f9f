"""FastAPI dependencies resolving the caller address from a Bearer token.

Usage in any protected router:
    from src.ar_gateway.auth.dependencies import require_admin

    @router.post("/admin-only")
    async def handler(caller: Annotated[str, Depends(require_admin)]):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.ar_common.errors import InvalidCredentialsError, NotAdminError, NotServicesManagerError
from src.ar_gateway.auth.jwt_handler import decode_token

_bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """Return the caller address carried in the token's "sub" claim.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    address = payload.get("sub")
    if not address:
        raise _CREDENTIALS_EXCEPTION
    return address


async def require_admin(caller: str = Depends(get_current_caller)) -> str:
    """Raises NotAdminError (403) unless the caller is ADMIN_ADDRESS."""
    if caller != settings.ADMIN_ADDRESS:
        raise NotAdminError()
    return caller


async def require_services_manager(caller: str = Depends(get_current_caller)) -> str:
    """Raises NotServicesManagerError (403) unless the caller is SERVICES_MANAGER_ADDRESS."""
    if caller != settings.SERVICES_MANAGER_ADDRESS:
        raise NotServicesManagerError()
    return caller
