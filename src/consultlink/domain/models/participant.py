"""Participant identity and display models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ValidationError


class ParticipantKind(str, Enum):
    """Kind of participant; each kind lives in its own backing store."""
    CONSULTANT = "consultant"
    CLIENT = "client"

    @classmethod
    def parse(cls, value: Any) -> "ParticipantKind":
        """Parse a kind from boundary input."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        valid = ", ".join(k.value for k in cls)
        raise ValidationError(
            f"Invalid participant kind {value!r} (expected one of: {valid})",
            details={"field": "kind", "value": str(value)},
        )


def parse_positive_id(value: Any, field_name: str = "id") -> int:
    """
    Parse a positive integer identifier from boundary input.

    Accepts ints and decimal strings. Booleans are rejected even though
    they are ints in Python.
    """
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        parsed = None

    if parsed is None or parsed <= 0:
        raise ValidationError(
            f"{field_name} must be a positive integer, got {value!r}",
            details={"field": field_name, "value": str(value)},
        )
    return parsed


@dataclass(frozen=True)
class ParticipantRef:
    """
    Tagged participant identity.

    The id is only meaningful together with its kind: consultant 3 and
    client 3 are different participants.
    """
    kind: ParticipantKind
    id: int

    @classmethod
    def consultant(cls, participant_id: int) -> "ParticipantRef":
        return cls(ParticipantKind.CONSULTANT, participant_id)

    @classmethod
    def client(cls, participant_id: int) -> "ParticipantRef":
        return cls(ParticipantKind.CLIENT, participant_id)

    @classmethod
    def parse(cls, kind: Any, participant_id: Any) -> "ParticipantRef":
        """Build a reference from untrusted kind and id values."""
        return cls(ParticipantKind.parse(kind), parse_positive_id(participant_id))

    @classmethod
    def from_token(cls, token: str) -> "ParticipantRef":
        """Parse the ``kind:id`` textual form, e.g. ``consultant:1``."""
        if not isinstance(token, str) or ":" not in token:
            raise ValidationError(
                f"Invalid participant {token!r} (expected kind:id)",
                details={"field": "participant", "value": str(token)},
            )
        kind, _, raw_id = token.partition(":")
        return cls.parse(kind, raw_id)

    @property
    def sort_key(self) -> Tuple[str, int]:
        return (self.kind.value, self.id)

    def to_token(self) -> str:
        return f"{self.kind.value}:{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"kind": self.kind.value, "id": self.id}

    def __str__(self) -> str:
        return self.to_token()


def canonical_pair_key(a: ParticipantRef, b: ParticipantRef) -> str:
    """
    Order-independent key for an unordered pair of participants.

    canonical_pair_key(a, b) == canonical_pair_key(b, a), and the kind is
    part of the key.
    """
    first, second = sorted((a, b), key=lambda ref: ref.sort_key)
    return f"{first.to_token()}|{second.to_token()}"


@dataclass(frozen=True)
class ParticipantProfile:
    """Minimal display attributes of a participant."""
    ref: ParticipantRef
    name: str = ""
    email: str = ""
    location: str = ""
    specialization: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None

    @classmethod
    def empty(cls, ref: ParticipantRef) -> "ParticipantProfile":
        """Profile used when display data cannot be resolved."""
        return cls(ref=ref)

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.email or self.location)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "id": self.ref.id,
            "type": self.ref.kind.value,
            "name": self.name,
            "email": self.email,
            "location": self.location,
        }
        if self.ref.kind == ParticipantKind.CONSULTANT:
            data["specialization"] = self.specialization
        else:
            data["company_name"] = self.company_name
            data["industry"] = self.industry
        return data
