"""Identity resolver: inbound credentials -> Subject | Service | Anonymous.

Credential sources, first match wins:
  1. Authorization: Bearer <jwt>          -> Subject(userId, role)
  2. X-User-Id + X-User-Role (gateway)    -> Subject
  3. X-Service-Key == SERVICE_API_KEY     -> Service
  4. nothing usable                       -> Anonymous

Never raises: bad credentials degrade to Anonymous and the authorization
policy rejects the operation later if it needs an identity.

Deployment assumption: X-User-Id / X-User-Role are trusted as-is, so the
service must only be reachable through the API gateway, which strips these
headers from client requests and sets them itself. Exposed directly, any
caller could claim ADMIN by sending them.
"""

import hmac
import logging

from config.settings import settings
from src.us_common.enums import Role
from src.us_gateway.auth.identity import ANONYMOUS, SERVICE, Identity, Subject
from src.us_gateway.auth.jwt_handler import InvalidTokenError, decode_access_token

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def resolve_identity(
    authorization: str | None = None,
    user_id_header: str | None = None,
    role_header: str | None = None,
    service_key: str | None = None,
) -> Identity:
    if authorization and authorization.startswith(_BEARER_PREFIX):
        token = authorization[len(_BEARER_PREFIX):].strip()
        try:
            user_id, role = decode_access_token(token)
            return Subject(id=user_id, role=role)
        except InvalidTokenError as exc:
            logger.debug("Bearer token rejected: %s", exc)

    if _has_text(user_id_header) and _has_text(role_header):
        subject = _subject_from_headers(user_id_header, role_header)  # type: ignore[arg-type]
        if subject is not None:
            return subject

    if _has_text(service_key) and _service_key_matches(service_key):  # type: ignore[arg-type]
        return SERVICE
    if _has_text(service_key):
        logger.warning("Rejected X-Service-Key: value does not match configured key")

    return ANONYMOUS


def _subject_from_headers(user_id_header: str, role_header: str) -> Subject | None:
    try:
        return Subject(
            id=int(user_id_header.strip()),
            role=Role(role_header.strip().upper()),
        )
    except ValueError:
        logger.debug(
            "Gateway headers rejected: X-User-Id=%r X-User-Role=%r",
            user_id_header,
            role_header,
        )
        return None


def _service_key_matches(service_key: str) -> bool:
    return hmac.compare_digest(
        service_key.strip().encode("utf-8"),
        settings.SERVICE_API_KEY.encode("utf-8"),
    )


def _has_text(value: str | None) -> bool:
    return value is not None and value.strip() != ""
