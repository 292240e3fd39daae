"""Identity & token service.

Tokens are simplejwt access tokens signed with ``SECRET_KEY``. Verification is
stateless: there is no revocation list, so a logout only discards the token on
the client and the credential stays valid until it expires.
"""

from __future__ import annotations

from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken


def issue_token(user) -> str:
    """Return a signed, time-limited credential bound to ``user.id``."""

    return str(AccessToken.for_user(user))


def verify_token(raw_token: str) -> int:
    """Return the user id carried by ``raw_token``.

    Raises ``InvalidToken`` (HTTP 401) for bad signatures, expired or malformed
    tokens. The message keeps simplejwt's wording so callers can tell an
    expired credential apart ("Token is expired").
    """

    if not raw_token:
        msg = "Token is missing"
        raise InvalidToken(msg)
    try:
        token = AccessToken(raw_token)
    except TokenError as exc:
        raise InvalidToken(str(exc)) from exc

    user_id = token.get(api_settings.USER_ID_CLAIM)
    if user_id is None:
        msg = "Token contained no recognizable user identification"
        raise InvalidToken(msg)
    try:
        return int(user_id)
    except (TypeError, ValueError) as exc:
        msg = "Token contained no recognizable user identification"
        raise InvalidToken(msg) from exc
