"""Credential decoding for display and navigation.

The console never verifies the credential signature: the REST API validates the
bearer token on every call, so the claims decoded here only decide what to
render. They are not an authorization boundary.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from jwt.utils import base64url_decode

logger = logging.getLogger(__name__)


class Role(StrEnum):
    ADMIN = "ADMIN"
    SUPERVISOR = "SUPERVISOR"
    INTERN = "INTERN"


ALL_ROLES: frozenset[Role] = frozenset(Role)


@dataclass(frozen=True)
class Claims:
    role: Role
    subject_id: str | None = None
    tenant_id: str | None = None
    display_name: str | None = None


def _first_present(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    return str(value)


def claims_from_payload(payload: dict[str, Any]) -> Claims | None:
    raw_role = payload.get("role")
    if not isinstance(raw_role, str):
        return None
    try:
        role = Role(raw_role.upper())
    except ValueError:
        return None
    display_name = _first_present(payload, "fullName", "name")
    return Claims(
        role=role,
        subject_id=_as_text(_first_present(payload, "userId", "sub")),
        tenant_id=_as_text(_first_present(payload, "companyId", "tenant_id")),
        display_name=display_name if isinstance(display_name, str) else None,
    )


def decode_credential(token: str | None) -> Claims | None:
    if not token:
        return None
    segments = token.split(".")
    if len(segments) != 3:
        logger.warning("credential has %d segments, expected 3", len(segments))
        return None
    try:
        payload = json.loads(base64url_decode(segments[1]))
    except ValueError as exc:
        logger.warning("credential decode failed: %s", exc)
        return None
    if not isinstance(payload, dict):
        logger.warning("credential payload is not an object")
        return None
    claims = claims_from_payload(payload)
    if claims is None:
        logger.warning("credential carries no known role")
    return claims


class CredentialDecoder:
    def decode(self, token: str | None) -> Claims | None:
        return decode_credential(token)
