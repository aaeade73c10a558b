"""Signed bearer tokens — a ``CurrentUserProvider`` for API clients.

Tokens carry the user id and roles, serialized as JSON and signed with
``itsdangerous``. They are signed, not encrypted.

``itsdangerous`` is an optional dependency. If not installed,
``TokenUserProvider.__init__`` raises ``ConfigurationError``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from gravitycar.contracts import User
from gravitycar.errors import ConfigurationError
from gravitycar.http.request import Request

logger = logging.getLogger("gravitycar.security")


@dataclass(frozen=True, slots=True)
class TokenUser:
    """The user a verified token stands for."""

    id: str
    roles: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """Token provider configuration.

    ``secret_key`` is required.
    """

    secret_key: str
    max_age: int = 3600
    salt: str = "gravitycar-auth"
    token_header: str = "Authorization"
    token_scheme: str = "Bearer"


class TokenUserProvider:
    """Resolves the current user from a signed bearer token.

    Usage::

        provider = TokenUserProvider(TokenConfig(secret_key="..."))
        token = provider.issue_token(TokenUser("42", frozenset({"admin"})))

        app = App(current_user_provider=provider)
        # client sends: Authorization: Bearer <token>
    """

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: TokenConfig) -> None:
        try:
            from itsdangerous import URLSafeTimedSerializer
        except ImportError:
            msg = (
                "TokenUserProvider requires the 'itsdangerous' package. "
                "Install it with: pip install gravitycar[auth]"
            )
            raise ConfigurationError(msg) from None

        if not config.secret_key:
            msg = "TokenConfig.secret_key must not be empty."
            raise ConfigurationError(msg)

        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt=config.salt)

    def issue_token(self, user: User) -> str:
        """Sign *user*'s id and roles into a bearer token."""
        return self._serializer.dumps({"id": str(user.id), "roles": sorted(user.roles)})

    def _extract_token(self, request: Request) -> str | None:
        header = request.headers.get(self._config.token_header.lower())
        if header is None:
            return None

        prefix = f"{self._config.token_scheme} "
        if not header.startswith(prefix):
            return None

        token = header[len(prefix) :].strip()
        return token if token else None

    def verify_token(self, token: str) -> TokenUser | None:
        """The token's user, or None if the signature is bad or expired."""
        from itsdangerous import BadSignature

        try:
            data: Any = self._serializer.loads(token, max_age=self._config.max_age)
        except BadSignature:
            logger.info("Rejected bearer token: bad or expired signature")
            return None

        if not isinstance(data, dict) or not data.get("id"):
            return None
        return TokenUser(str(data["id"]), frozenset(data.get("roles") or ()))

    def get_current_user(self, request: Request) -> TokenUser | None:
        token = self._extract_token(request)
        if token is None:
            return None
        return self.verify_token(token)
