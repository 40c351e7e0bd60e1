"""Minimal persisted entities handled by the save coordinator.

Only what persistence, validation and file import need is modelled here:
an identifier, a collection kind, a few fields and the validation rules
that run before anything reaches the store.
"""

import abc
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, ClassVar, Dict, Optional, Type, Union

from swiffcore.domain.models.common import EntityID, EntityKey, EntityKind
from swiffcore.domain.models.errors import ValidationError


def _new_id() -> EntityID:
    return EntityID(uuid.uuid4().hex)


def _text(data: Dict[str, Any], name: str, default: str = "") -> str:
    # YAML hands back ints, floats and None for bare scalars
    value = data.get(name)
    return default if value is None else str(value)


def _parse_date(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, datetime.min.time())
    if isinstance(raw, str):
        return datetime.fromisoformat(raw)
    raise ValueError(f"Unsupported transaction date: {raw!r}")


@dataclass
class Entity(abc.ABC):
    """Base class: identity plus a collection kind."""

    KIND: ClassVar[str] = "entity"

    @property
    def kind(self) -> EntityKind:
        return EntityKind(self.KIND)

    @property
    def key(self) -> EntityKey:
        return (self.kind, self.id)  # type: ignore[attr-defined]

    @abc.abstractmethod
    def validate(self) -> None:
        """Raises ValidationError when the entity breaks a domain rule."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        """Builds an entity from a plain mapping such as a parsed import record."""
        pass


@dataclass
class Person(Entity):
    """Entity representing a contact money is shared with."""

    KIND: ClassVar[str] = "person"

    name: str
    email: str = ""
    phone: str = ""
    id: EntityID = field(default_factory=_new_id)

    def validate(self) -> None:
        if not self.name.strip():
            raise ValidationError("Person name cannot be empty", self)
        if self.email and "@" not in self.email:
            raise ValidationError(f"Invalid email address: {self.email!r}", self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Person":
        return cls(
            name=_text(data, "name"),
            email=_text(data, "email"),
            phone=_text(data, "phone"),
            id=EntityID(data.get("id") or _new_id()),
        )


@dataclass
class Subscription(Entity):
    """Entity representing a recurring paid service."""

    KIND: ClassVar[str] = "subscription"

    name: str
    price: float = 0.0
    billing_cycle: str = "monthly"
    is_active: bool = True
    id: EntityID = field(default_factory=_new_id)

    def validate(self) -> None:
        if not self.name.strip():
            raise ValidationError("Subscription name cannot be empty", self)
        if self.price < 0:
            raise ValidationError(f"Subscription price cannot be negative: {self.price}", self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subscription":
        return cls(
            name=_text(data, "name"),
            price=float(data.get("price", 0.0)),
            billing_cycle=_text(data, "billing_cycle", "monthly"),
            is_active=bool(data.get("is_active", True)),
            id=EntityID(data.get("id") or _new_id()),
        )


@dataclass
class Transaction(Entity):
    """Entity representing a single income or expense."""

    KIND: ClassVar[str] = "transaction"

    title: str
    amount: float = 0.0
    category: str = "other"
    date: datetime = field(default_factory=datetime.now)
    id: EntityID = field(default_factory=_new_id)

    def validate(self) -> None:
        if not self.title.strip():
            raise ValidationError("Transaction title cannot be empty", self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            title=_text(data, "title"),
            amount=float(data.get("amount", 0.0)),
            category=_text(data, "category", "other"),
            date=_parse_date(data.get("date")) or datetime.now(),
            id=EntityID(data.get("id") or _new_id()),
        )


AnyEntity = Union[Person, Subscription, Transaction]

ENTITY_TYPES: Dict[str, Type[Entity]] = {
    Person.KIND: Person,
    Subscription.KIND: Subscription,
    Transaction.KIND: Transaction,
}

ENTITY_KINDS = tuple(ENTITY_TYPES)


def entity_type_for(kind: str) -> Type[Entity]:
    """Looks up the entity class for a collection kind."""
    try:
        return ENTITY_TYPES[kind]
    except KeyError:
        raise ValueError(
            f"Unknown entity kind '{kind}'. Choose one of: {', '.join(ENTITY_KINDS)}"
        ) from None
