"""Immutable data contracts consumed from the people/relations data layer."""
from __future__ import annotations

from typing import List

from typing_extensions import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

PropertyKind = Literal[
    "tags",
    "organizations",
    "phone",
    "birthday",
    "likes",
    "dislikes",
    "personality",
    "custom",
]
ArrowDirection = Literal["right", "left", "both", "none"]


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability after creation."""

    model_config = ConfigDict(frozen=True)


class PersonProperty(_FrozenBaseModel):
    """Typed property attached to a person (tags, organizations, ...)."""

    id: str = Field(..., min_length=1)
    type: PropertyKind
    values: List[str] = Field(default_factory=list)


class Person(_FrozenBaseModel):
    """Person record supplied by the data layer."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    properties: List[PersonProperty] = Field(default_factory=list)
    is_self: bool = False

    def property_values(self, kind: str) -> List[str]:
        """Return the unique values of every property of ``kind``, in order."""

        seen: List[str] = []
        for prop in self.properties:
            if prop.type != kind:
                continue
            for value in prop.values:
                cleaned = value.strip()
                if cleaned and cleaned not in seen:
                    seen.append(cleaned)
        return seen

    @property
    def organizations(self) -> List[str]:
        return self.property_values("organizations")

    @property
    def tags(self) -> List[str]:
        return self.property_values("tags")


class Relation(_FrozenBaseModel):
    """Directed, weighted relation between two people.

    ``strength`` is kept unbounded here; the 1-5 closeness domain is enforced
    by :func:`relgraph.graph.mapping.build_graph` where relations become edges.
    """

    id: str = Field(..., min_length=1)
    source_person_id: str = Field(..., min_length=1)
    target_person_id: str = Field(..., min_length=1)
    description: str = ""
    strength: float = 3.0
    arrow_direction: ArrowDirection = "right"

    @field_validator("target_person_id")
    @classmethod
    def _reject_self_relation(cls, value: str, info: ValidationInfo) -> str:
        """Validate that a relation connects two distinct people.

        Args:
            value: The proposed target person identifier.
            info: Validation context containing other field values.

        Returns:
            str: The validated target identifier.

        Raises:
            ValueError: If source and target are the same person.
        """
        if value == info.data.get("source_person_id"):
            raise ValueError("relation source and target must differ")
        return value
