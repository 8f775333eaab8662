import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import SecretStr

from app.errors import UnauthorizedError

logger = logging.getLogger("tubely")

ALGORITHM = "HS256"
TOKEN_ISSUER = "tubely-access"

security = HTTPBearer(auto_error=False)


def make_access_token(user_id: UUID, secret: SecretStr, expires_in: timedelta = timedelta(hours=1)) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "iss": TOKEN_ISSUER,
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, secret.get_secret_value(), algorithm=ALGORITHM)


def authenticate(credentials: HTTPAuthorizationCredentials | None, secret: SecretStr) -> UUID:
    """
    Validate a bearer credential and return the user id it was issued for.

    Raises:
        UnauthorizedError: The credential is missing, invalid or expired.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Couldn't find JWT")

    try:
        payload = jwt.decode(
            credentials.credentials,
            secret.get_secret_value(),
            algorithms=[ALGORITHM],
            issuer=TOKEN_ISSUER,
        )
        return UUID(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"JWT validation failed: error={e!r}")
        raise UnauthorizedError("Couldn't validate JWT", cause=e) from e
