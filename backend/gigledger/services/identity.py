"""
Identity mapping between the source and target stores.

Users are joined on email. Vehicles (and anything else inserted one by one)
are recorded as they are created, so dependent records can be re-keyed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Union

from gigledger.schemas.models import SourceUser, TargetUser, UserIdentity


@dataclass(frozen=True)
class Resolved:
    target_id: str


@dataclass(frozen=True)
class Unresolved:
    source_id: Optional[str]


Resolution = Union[Resolved, Unresolved]


class IdentityMap:
    """Lookup from a source identity to its target identity."""

    def __init__(self, name: str, mapping: Optional[dict[str, str]] = None) -> None:
        self.name = name
        self._mapping: dict[str, str] = dict(mapping or {})

    def record(self, source_id: str, target_id: str) -> None:
        self._mapping[source_id] = target_id

    def resolve(self, source_id: Any) -> Resolution:
        # Firestore fields are untyped; a list or map id never resolves
        if not isinstance(source_id, str):
            return Unresolved(None)
        target_id = self._mapping.get(source_id)
        if target_id is None:
            return Unresolved(source_id)
        return Resolved(target_id)

    def resolve_many(self, source_ids: Iterable[Any]) -> list[str]:
        """Translate ids in order, dropping the ones that do not resolve."""
        resolved = []
        for source_id in source_ids:
            resolution = self.resolve(source_id)
            if isinstance(resolution, Resolved):
                resolved.append(resolution.target_id)
        return resolved

    def as_dict(self) -> dict[str, str]:
        return dict(self._mapping)

    def __contains__(self, source_id: object) -> bool:
        return isinstance(source_id, str) and source_id in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __repr__(self) -> str:
        return f"IdentityMap(name={self.name!r}, size={len(self._mapping)})"


def build_user_identity_map(
    source_users: Iterable[SourceUser],
    target_users: Iterable[TargetUser],
) -> tuple[IdentityMap, list[UserIdentity], list[SourceUser]]:
    """
    Join source users to target users by exact (case-sensitive) email.

    Returns:
        (identity map, matched identities, unmatched source users)
    """
    target_by_email: dict[str, str] = {}
    for user in target_users:
        if user.email:
            target_by_email[user.email] = user.id

    identity_map = IdentityMap("users")
    matched: list[UserIdentity] = []
    unmatched: list[SourceUser] = []

    for user in source_users:
        target_id = target_by_email.get(user.email) if user.email else None
        if target_id is None:
            unmatched.append(user)
            continue
        identity_map.record(user.id, target_id)
        matched.append(UserIdentity(source_id=user.id, email=user.email, target_id=target_id))

    return identity_map, matched, unmatched
