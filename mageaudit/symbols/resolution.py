"""Tri-state result of a best-effort name resolution."""

from dataclasses import dataclass
from enum import Enum


class ResolutionKind(Enum):
    """How a type or storage name was obtained."""

    RESOLVED = "resolved"
    FALLBACK = "fallback"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Resolution:
    """A name plus how much the resolver trusts it.

    RESOLVED came from an explicit declaration (import alias, fully-qualified
    token, promoted property, assignment). FALLBACK is a guess kept so rules can
    still pattern-match on it. UNRESOLVED carries no value at all.
    """

    kind: ResolutionKind
    value: str | None = None

    @classmethod
    def resolved(cls, value: str) -> "Resolution":
        return cls(ResolutionKind.RESOLVED, value)

    @classmethod
    def fallback(cls, value: str) -> "Resolution":
        return cls(ResolutionKind.FALLBACK, value)

    @classmethod
    def unresolved(cls) -> "Resolution":
        return cls(ResolutionKind.UNRESOLVED, None)

    @property
    def is_resolved(self) -> bool:
        return self.kind is ResolutionKind.RESOLVED

    @property
    def is_fallback(self) -> bool:
        return self.kind is ResolutionKind.FALLBACK

    @property
    def is_unresolved(self) -> bool:
        return self.kind is ResolutionKind.UNRESOLVED

    def __str__(self) -> str:
        return self.value or ""
