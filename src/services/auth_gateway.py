from __future__ import annotations

from typing import Mapping, Protocol

from domain.base_types import UserId


class UnauthorizedError(Exception):
    pass


class AuthGateway(Protocol):
    """Resolves the opaque id of the authenticated user. Sessions live elsewhere."""

    def authenticated_user_id(self, headers: Mapping[str, str]) -> UserId: ...


class HeaderAuthGateway(AuthGateway):
    """Trusts a user id header set by the upstream session layer.

    Clients can send this header themselves, so deploy only behind a proxy that
    strips any incoming copy and sets it from the authenticated session.
    """

    def __init__(self, *, header_name: str) -> None:
        if not header_name:
            msg = "header_name must be provided"
            raise ValueError(msg)
        self.header_name = header_name

    def authenticated_user_id(self, headers: Mapping[str, str]) -> UserId:
        user_id = (headers.get(self.header_name) or "").strip()
        if not user_id:
            raise UnauthorizedError("Unauthorized")
        return UserId(user_id)


__all__ = ["AuthGateway", "HeaderAuthGateway", "UnauthorizedError"]
