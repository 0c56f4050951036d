import logging
from collections.abc import Callable
from functools import lru_cache

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ROLE_CLIENT = "CLIENT"
ROLE_ADMIN = "ADMIN"

bearer_scheme = HTTPBearer(auto_error=False)


class AuthSettings(BaseSettings):
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_auth_settings() -> AuthSettings:
    return AuthSettings()


class CurrentUser(BaseModel):
    username: str
    roles: frozenset[str] = frozenset()
    token: str

    def has_any_role(self, *roles: str) -> bool:
        return bool(self.roles.intersection(roles))


class InvalidTokenError(Exception):
    pass


class JWTTokenVerifier:
    """Verifies a bearer JWT and extracts the caller's username and roles.

    Roles are read from the ``realm_access.roles`` claim, the layout issued by
    Keycloak realms. The username comes from ``preferred_username`` and falls
    back to ``sub``.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", audience: str | None = None):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience

    def verify(self, token: str) -> CurrentUser:
        options = {"verify_aud": self.audience is not None}
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options,
            )
        except JWTError as e:
            raise InvalidTokenError("Could not validate credentials") from e

        username = payload.get("preferred_username") or payload.get("sub")
        if not username:
            raise InvalidTokenError("Invalid token: missing username")

        realm_access = payload.get("realm_access") or {}
        roles = realm_access.get("roles") if isinstance(realm_access, dict) else None
        if not isinstance(roles, list):
            roles = []

        return CurrentUser(username=username, roles=frozenset(roles), token=token)


def get_token_verifier() -> JWTTokenVerifier:
    settings = get_auth_settings()
    return JWTTokenVerifier(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        audience=settings.JWT_AUDIENCE,
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
    verifier: JWTTokenVerifier = Depends(get_token_verifier),  # noqa: B008
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return verifier.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning("Rejected bearer token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def require_roles(*roles: str) -> Callable[..., CurrentUser]:
    """Build a dependency that admits callers holding at least one of ``roles``."""

    def _check_roles(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:  # noqa: B008
        if not current_user.has_any_role(*roles):
            logger.warning(
                "User %s denied: requires one of %s, has %s",
                current_user.username,
                sorted(roles),
                sorted(current_user.roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _check_roles
