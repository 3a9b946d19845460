"""Per-entity deny-list for fields and relations."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Blacklist:
    """
    Fields and relations hidden from filtering, sorting, search and projection.

    ``children`` holds the blacklist applied after descending into a
    relation. A relation with no child entry is unrestricted below it.
    ``is_final`` forbids any relation descent from this node.
    """

    fields: frozenset[str] = field(default_factory=frozenset)
    relations: frozenset[str] = field(default_factory=frozenset)
    children: Mapping[str, Blacklist] = field(default_factory=dict)
    is_final: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", frozenset(self.fields))
        object.__setattr__(self, "relations", frozenset(self.relations))
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))

    @classmethod
    def build(
        cls,
        *,
        fields: Iterable[str] = (),
        relations: Iterable[str] = (),
        children: Mapping[str, Blacklist | Mapping[str, Any]] | None = None,
        is_final: bool = False,
    ) -> Blacklist:
        """Build a blacklist, accepting nested plain dicts for children."""
        nested = {
            name: child if isinstance(child, Blacklist) else cls.build(**child)
            for name, child in (children or {}).items()
        }
        return cls(
            fields=frozenset(fields),
            relations=frozenset(relations),
            children=nested,
            is_final=is_final,
        )

    def allows_field(self, name: str) -> bool:
        return name not in self.fields

    def allows_relation(self, name: str) -> bool:
        return not self.is_final and name not in self.relations

    def child(self, relation: str) -> Blacklist | None:
        return self.children.get(relation)
