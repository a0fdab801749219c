"""Column roles — map header labels to semantic roles."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from sheet_metrics.models import MissingColumnsError

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_header(label: object) -> str:
    """Trim, lowercase and drop all whitespace: ``" Item  Price"`` → ``"itemprice"``."""
    if label is None:
        return ""
    return _WHITESPACE_RE.sub("", str(label).strip().lower())


@dataclass(frozen=True)
class RoleSpec:
    """A semantic role and the header labels that identify it."""

    name: str
    headers: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("role name must be non-empty")
        if isinstance(self.headers, str):
            raise TypeError("headers must be a sequence of strings")
        object.__setattr__(self, "headers", tuple(self.headers))
        if not self.headers:
            raise ValueError(f"role {self.name!r} needs at least one header label")

    @property
    def expected(self) -> frozenset[str]:
        return frozenset(normalize_header(h) for h in self.headers)


PRICE = "price"
TIMESTAMP = "timestamp"

DEFAULT_ROLES: tuple[RoleSpec, ...] = (
    RoleSpec(PRICE, ("Item Price",)),
    RoleSpec(TIMESTAMP, ("Purchase Date Time",)),
)


def resolve_columns(
    header: Sequence[object],
    roles: Iterable[RoleSpec] = DEFAULT_ROLES,
) -> dict[str, int]:
    """Return ``{role: index}`` for *header*.

    Raises
    ------
    MissingColumnsError
        Naming every role with no matching header cell.
    """
    normalized = [normalize_header(label) for label in header]
    mapping: dict[str, int] = {}
    missing: list[str] = []
    for role in roles:
        expected = role.expected
        index = next((i for i, label in enumerate(normalized) if label in expected), None)
        if index is None:
            missing.append(role.name)
        else:
            mapping[role.name] = index
    if missing:
        raise MissingColumnsError(missing)
    return mapping


def with_aliases(
    roles: Iterable[RoleSpec],
    aliases: Mapping[str, Sequence[str]],
) -> tuple[RoleSpec, ...]:
    """Return *roles* with extra accepted header labels from *aliases*."""
    roles = tuple(roles)
    known = {role.name for role in roles}
    unknown = sorted(set(aliases) - known)
    if unknown:
        raise ValueError(
            f"Unknown role(s): {', '.join(unknown)} (expected one of: {', '.join(sorted(known))})"
        )
    return tuple(
        RoleSpec(role.name, (*role.headers, *aliases.get(role.name, ()))) for role in roles
    )
