"""Metadata filter predicates for vector-store reads and deletes.

Filters are a small tagged structure instead of free-form dicts:

* :class:`Equals` -- one ``field == value`` test on record metadata.
* :class:`And` -- a conjunction of predicates.

All owners share one collection, so tenant isolation rests entirely on
every read carrying an ``owner_id`` equality test.  The two constructors
below are the only way the services build filters:

* :func:`owner_scope` -- everything one owner may see (queries).
* :func:`owner_source_scope` -- one owner's chunks for one source name
  (deletion).  Both conjuncts are always present.

Vector-store adapters call :meth:`Predicate.is_owner_scoped` and refuse any
filter that would read across owners.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from studyrag.models.rag import OWNER_ID_KEY, SOURCE_NAME_KEY

MetadataValue = Union[str, int, float, bool]


class Equals(BaseModel):
    """Metadata equality predicate: ``metadata[field] == value``."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(min_length=1)
    value: MetadataValue

    def matches(self, metadata: dict[str, object]) -> bool:
        return metadata.get(self.field) == self.value

    def conjuncts(self) -> tuple[Equals, ...]:
        return (self,)

    def is_owner_scoped(self) -> bool:
        return self.field == OWNER_ID_KEY and isinstance(self.value, str) and bool(self.value)


class And(BaseModel):
    """Conjunction of equality predicates (nested ``And`` is flattened)."""

    model_config = ConfigDict(frozen=True)

    predicates: tuple[Predicate, ...] = Field(min_length=1)

    def matches(self, metadata: dict[str, object]) -> bool:
        return all(p.matches(metadata) for p in self.predicates)

    def conjuncts(self) -> tuple[Equals, ...]:
        flat: list[Equals] = []
        for predicate in self.predicates:
            flat.extend(predicate.conjuncts())
        return tuple(flat)

    def is_owner_scoped(self) -> bool:
        return any(p.is_owner_scoped() for p in self.conjuncts())


Predicate = Union[Equals, And]
And.model_rebuild()


def owner_scope(owner_id: str) -> Equals:
    """Filter matching every record owned by *owner_id*."""
    return Equals(field=OWNER_ID_KEY, value=owner_id)


def owner_source_scope(owner_id: str, source_name: str) -> And:
    """Filter matching *owner_id*'s records for one *source_name*."""
    return And(
        predicates=(
            Equals(field=OWNER_ID_KEY, value=owner_id),
            Equals(field=SOURCE_NAME_KEY, value=source_name),
        )
    )
