"""
Hierarchical entity names.

An EntityName is a sequence of namespace segments. Names are compared and
hashed by their segments, so `A::B` parsed from a `::` string and `A.B`
parsed from a dotted string are the same key.
"""
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

NAMESPACE_SEPARATOR = "::"
DOTTED_SEPARATOR = "."

NameLike = Union[str, "EntityName"]


class EntityName(BaseModel):
    """Immutable, hashable hierarchical name of a host entity."""
    segments: Tuple[str, ...]

    model_config = ConfigDict(frozen=True)

    @field_validator("segments")
    @classmethod
    def _check_segments(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("An entity name needs at least one segment")
        for segment in value:
            if not segment or NAMESPACE_SEPARATOR in segment or DOTTED_SEPARATOR in segment:
                raise ValueError(f"Invalid name segment: {segment!r}")
        return value

    @classmethod
    def parse(cls, text: NameLike, separator: Optional[str] = None) -> "EntityName":
        """
        Build a name from its string form.

        Without an explicit separator `::` wins when present, otherwise the
        text is split on dots.
        """
        if isinstance(text, EntityName):
            return text
        if separator is None:
            separator = NAMESPACE_SEPARATOR if NAMESPACE_SEPARATOR in text else DOTTED_SEPARATOR
        return cls(segments=tuple(text.split(separator)))

    @classmethod
    def from_segments(cls, *segments: str) -> "EntityName":
        return cls(segments=tuple(segments))

    @property
    def parent(self) -> Optional["EntityName"]:
        if len(self.segments) == 1:
            return None
        return EntityName(segments=self.segments[:-1])

    @property
    def basename(self) -> str:
        return self.segments[-1]

    @property
    def depth(self) -> int:
        return len(self.segments)

    @property
    def dotted(self) -> str:
        return DOTTED_SEPARATOR.join(self.segments)

    def child(self, segment: str) -> "EntityName":
        return EntityName(segments=self.segments + (segment,))

    def is_descendant_of(self, other: "EntityName") -> bool:
        """True when `other` is a strict prefix of this name."""
        return len(self.segments) > len(other.segments) and self.segments[:len(other.segments)] == other.segments

    def is_direct_child_of(self, other: "EntityName") -> bool:
        """True when this name is `other` followed by exactly one segment."""
        return len(self.segments) == len(other.segments) + 1 and self.is_descendant_of(other)

    def __str__(self) -> str:
        return NAMESPACE_SEPARATOR.join(self.segments)

    def __repr__(self) -> str:
        return f"EntityName({str(self)!r})"


def as_name(value: NameLike) -> EntityName:
    """Coerce a string or EntityName into an EntityName."""
    return EntityName.parse(value)
