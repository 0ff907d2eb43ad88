"""Static principal directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

__all__ = ["StaticDirectory"]


class StaticDirectory:
    """Directory backed by a fixed role membership mapping.

    Example:
        >>> directory = StaticDirectory({"manager": ["bob", "carol"], "finance": ["dave"]})
        >>> await directory.find_principals_by_role("manager")
        ['bob', 'carol']
    """

    def __init__(self, roles: Mapping[str, Iterable[str]] | None = None) -> None:
        self._roles: dict[str, list[str]] = {role: list(members) for role, members in (roles or {}).items()}

    def grant(self, principal_id: str, role: str) -> None:
        """Add ``principal_id`` to ``role``."""
        members = self._roles.setdefault(role, [])
        if principal_id not in members:
            members.append(principal_id)

    def revoke(self, principal_id: str, role: str) -> None:
        members = self._roles.get(role, [])
        if principal_id in members:
            members.remove(principal_id)

    async def find_principals_by_role(self, role: str) -> list[str]:
        return list(self._roles.get(role, []))

    async def principal_has_role(self, principal_id: str, role: str) -> bool:
        return principal_id in self._roles.get(role, [])
