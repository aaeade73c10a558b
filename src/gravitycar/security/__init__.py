"""Security utilities — route access control and bearer tokens.

The Router runs ``AccessPolicy.check`` before dispatching::

    from gravitycar.security import AccessPolicy

    policy = AccessPolicy(current_user_provider=provider, permission_checker=rbac)

Signed bearer tokens (``pip install gravitycar[auth]``)::

    from gravitycar.security import TokenConfig, TokenUser, TokenUserProvider

    provider = TokenUserProvider(TokenConfig(secret_key="..."))
    token = provider.issue_token(TokenUser("42", frozenset({"admin"})))
"""

from gravitycar.security.access import AccessPolicy, map_method_to_action
from gravitycar.security.tokens import TokenConfig, TokenUser, TokenUserProvider

__all__ = [
    "AccessPolicy",
    "TokenConfig",
    "TokenUser",
    "TokenUserProvider",
    "map_method_to_action",
]
