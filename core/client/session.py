"""Session credentials consumed by the API client."""

from __future__ import annotations

import uuid
from typing import Protocol


class SessionProvider(Protocol):
    """Supplies the bearer token and organization id; never obtains them."""

    def access_token(self) -> str | None: ...

    def org_id(self) -> str | None: ...

    def sign_out(self) -> None: ...


class StaticSession:
    """Session backed by fixed values from settings."""

    def __init__(self, token: str | None = None, org_id: str | None = None) -> None:
        self._token = token or None
        self._org_id = org_id or None
        self.signed_out = False

    def access_token(self) -> str | None:
        return None if self.signed_out else self._token

    def org_id(self) -> str | None:
        return self._org_id

    def sign_out(self) -> None:
        self.signed_out = True


def is_uuid(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value.strip())
    except ValueError:
        return False
    return True


def auth_headers(session: SessionProvider) -> dict[str, str]:
    """Bearer header when a token exists; ``x-org-id`` only alongside a token and a UUID."""

    token = session.access_token()
    if not token:
        return {}

    headers = {"Authorization": f"Bearer {token}"}
    org_id = session.org_id()
    if org_id and is_uuid(org_id):
        headers["x-org-id"] = org_id.strip()
    return headers
