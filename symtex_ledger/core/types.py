# symtex_ledger/core/types.py
"""
Record types for the six-dimension (Who/What/When/Where/Why/How) ledger.

Every record is a frozen dataclass and every closed vocabulary is a str enum,
so a bad value fails at construction with ValidationError instead of turning
up later in a query. Mappings coming from collaborators (JSON, the dashboard)
go through `from_dict`, which accepts snake_case and the dashboard's camelCase
keys.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar
import hashlib

from symtex_ledger.core.errors import ValidationError


class ActorType(str, Enum):
    USER = "user"
    COGNATE = "cognate"
    SYSTEM = "system"
    AUTOMATION = "automation"
    INTEGRATION = "integration"


class Category(str, Enum):
    ACTION = "action"
    DECISION = "decision"
    APPROVAL = "approval"
    ESCALATION = "escalation"
    ERROR = "error"
    ACCESS = "access"
    CHANGE = "change"
    CREATION = "creation"
    DELETION = "deletion"
    COMMUNICATION = "communication"
    INTEGRATION = "integration"
    SYSTEM = "system"


class Severity(str, Enum):
    """Ordered: debug < info < notice < warning < error < critical."""

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {severity: rank for rank, severity in enumerate(Severity)}


class ActionStatus(str, Enum):
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Trigger(str, Enum):
    USER_REQUEST = "user_request"
    AUTOMATION = "automation"
    SCHEDULE = "schedule"
    EVENT = "event"
    CONDITION = "condition"
    SYSTEM = "system"
    ERROR = "error"


class TriggerRefType(str, Enum):
    MESSAGE = "message"
    AUTOMATION = "automation"
    EVENT = "event"
    RULE = "rule"
    SOP = "sop"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class EvidenceType(str, Enum):
    SCREENSHOT = "screenshot"
    DOCUMENT = "document"
    LOG = "log"
    CODE = "code"
    DATA = "data"
    AUDIO = "audio"
    VIDEO = "video"
    OTHER = "other"


class RelatedEntityType(str, Enum):
    COGNATE = "cognate"
    SPACE = "space"
    PROJECT = "project"
    INITIATIVE = "initiative"
    AUTOMATION = "automation"
    USER = "user"


class Relationship(str, Enum):
    SUBJECT = "subject"
    TARGET = "target"
    PARTICIPANT = "participant"
    OBSERVER = "observer"


class HashAlgorithm(str, Enum):
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"


E = TypeVar("E", bound=Enum)


# ── coercion helpers ─────────────────────────────────────────────────────────

def coerce_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{value!r} is not one of: {allowed}", field_name) from None


def parse_timestamp(value: Any, field_name: str = "when") -> datetime:
    """Accept a datetime or ISO 8601 string; always return an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"not an ISO 8601 timestamp: {value!r}", field_name) from None
    else:
        raise ValidationError(f"expected datetime or ISO string, got {type(value).__name__}", field_name)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """ISO 8601 UTC with microseconds and a trailing Z. Lossless for parse_timestamp."""
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("must be a non-empty string", field_name)
    return value


def _optional_text(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"expected string, got {type(value).__name__}", field_name)
    return value


def _non_negative(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"expected a number, got {type(value).__name__}", field_name)
    if value < 0:
        raise ValidationError("must not be negative", field_name)
    return value


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def _text_tuple(values: Any, field_name: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    out = []
    for value in values:
        text = _require_text(value, field_name)
        if text not in out:
            out.append(text)
    return tuple(out)


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Drop absent optionals so the canonical form doesn't depend on how a payload was spelled."""
    return {k: v for k, v in d.items() if v is not None and v != {} and v != []}


def _pick(data: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in data:
            return data[name]
    return default


def _as_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"expected an object, got {type(value).__name__}", field_name)
    return value


# ── the six W's ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Actor:
    """WHO: the responsible party."""

    type: ActorType
    id: str
    name: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "type", coerce_enum(ActorType, self.type, "who.type"))
        _require_text(self.id, "who.id")
        object.__setattr__(self, "name", _optional_text(self.name, "who.name") or self.id)
        object.__setattr__(self, "metadata", _freeze(_as_mapping(self.metadata or {}, "who.metadata")))

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type.value,
            "id": self.id,
            "name": self.name,
            "metadata": _thaw(self.metadata),
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Actor":
        data = _as_mapping(data, "who")
        return cls(
            type=data.get("type"),
            id=data.get("id"),
            name=data.get("name") or "",
            metadata=data.get("metadata") or {},
        )


@dataclass(frozen=True)
class Action:
    """WHAT: the event itself. `duration` is in milliseconds."""

    type: str
    category: Category
    severity: Severity
    description: str = ""
    status: ActionStatus = ActionStatus.COMPLETED
    result: Optional[str] = None
    duration: Optional[float] = None

    def __post_init__(self):
        _require_text(self.type, "what.type")
        object.__setattr__(self, "category", coerce_enum(Category, self.category, "what.category"))
        object.__setattr__(self, "severity", coerce_enum(Severity, self.severity, "what.severity"))
        object.__setattr__(self, "status", coerce_enum(ActionStatus, self.status, "what.status"))
        _optional_text(self.description, "what.description")
        _optional_text(self.result, "what.result")
        _non_negative(self.duration, "what.duration")

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity.value,
            "status": self.status.value,
            "result": self.result,
            "duration": self.duration,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Action":
        data = _as_mapping(data, "what")
        return cls(
            type=data.get("type"),
            category=data.get("category"),
            severity=data.get("severity"),
            description=data.get("description") or "",
            status=data.get("status") or ActionStatus.COMPLETED,
            result=data.get("result"),
            duration=data.get("duration"),
        )


@dataclass(frozen=True)
class Location:
    """WHERE: all references optional; at least one is expected in practice."""

    space_id: Optional[str] = None
    space_name: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    initiative_id: Optional[str] = None
    automation_id: Optional[str] = None
    conversation_id: Optional[str] = None
    external_system: Optional[str] = None
    path: Optional[str] = None

    _KEYS = (
        ("space_id", "spaceId"),
        ("space_name", "spaceName"),
        ("project_id", "projectId"),
        ("project_name", "projectName"),
        ("initiative_id", "initiativeId"),
        ("automation_id", "automationId"),
        ("conversation_id", "conversationId"),
        ("external_system", "externalSystem"),
        ("path", "path"),
    )

    def __post_init__(self):
        for name, _ in self._KEYS:
            _optional_text(getattr(self, name), f"where.{name}")

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name, _ in self._KEYS)

    @property
    def display_name(self) -> str:
        return self.space_name or self.project_name or "Unknown location"

    def to_dict(self) -> Dict[str, Any]:
        return _compact({name: getattr(self, name) for name, _ in self._KEYS})

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Location":
        data = _as_mapping(data or {}, "where")
        return cls(**{name: _pick(data, name, camel) for name, camel in cls._KEYS})


@dataclass(frozen=True)
class TriggerRef:
    type: TriggerRefType
    id: str
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "type", coerce_enum(TriggerRefType, self.type, "why.trigger_ref.type"))
        _require_text(self.id, "why.trigger_ref.id")

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"type": self.type.value, "id": self.id, "name": self.name})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TriggerRef":
        data = _as_mapping(data, "why.trigger_ref")
        return cls(type=data.get("type"), id=data.get("id"), name=data.get("name"))


@dataclass(frozen=True)
class Reason:
    """WHY: trigger plus optional reasoning. `confidence` is 0..1."""

    trigger: Trigger
    reasoning: Optional[str] = None
    trigger_ref: Optional[TriggerRef] = None
    goal: Optional[str] = None
    confidence: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "trigger", coerce_enum(Trigger, self.trigger, "why.trigger"))
        if isinstance(self.trigger_ref, Mapping):
            object.__setattr__(self, "trigger_ref", TriggerRef.from_dict(self.trigger_ref))
        _optional_text(self.reasoning, "why.reasoning")
        _optional_text(self.goal, "why.goal")
        if self.confidence is not None:
            _non_negative(self.confidence, "why.confidence")
            if self.confidence > 1:
                raise ValidationError("must be between 0 and 1", "why.confidence")

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "trigger": self.trigger.value,
            "reasoning": self.reasoning,
            "trigger_ref": self.trigger_ref.to_dict() if self.trigger_ref else None,
            "goal": self.goal,
            "confidence": self.confidence,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Reason":
        data = _as_mapping(data, "why")
        ref = _pick(data, "trigger_ref", "triggerRef")
        return cls(
            trigger=data.get("trigger"),
            reasoning=data.get("reasoning"),
            trigger_ref=TriggerRef.from_dict(ref) if ref else None,
            goal=data.get("goal"),
            confidence=data.get("confidence"),
        )


@dataclass(frozen=True)
class Resources:
    tokens: Optional[int] = None
    api_calls: Optional[int] = None
    duration: Optional[float] = None
    cost: Optional[float] = None

    def __post_init__(self):
        for name in ("tokens", "api_calls", "duration", "cost"):
            _non_negative(getattr(self, name), f"how.resources.{name}")

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "tokens": self.tokens,
            "api_calls": self.api_calls,
            "duration": self.duration,
            "cost": self.cost,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Resources":
        data = _as_mapping(data, "how.resources")
        return cls(
            tokens=data.get("tokens"),
            api_calls=_pick(data, "api_calls", "apiCalls"),
            duration=data.get("duration"),
            cost=data.get("cost"),
        )


@dataclass(frozen=True)
class Method:
    """HOW: approach, tools, model and resources consumed."""

    approach: str = ""
    tools: Tuple[str, ...] = ()
    model: Optional[str] = None
    parameters: Mapping[str, Any] = field(default_factory=dict)
    steps: Tuple[str, ...] = ()
    resources: Optional[Resources] = None

    def __post_init__(self):
        _optional_text(self.approach, "how.approach")
        _optional_text(self.model, "how.model")
        object.__setattr__(self, "tools", _text_tuple(self.tools, "how.tools"))
        if isinstance(self.steps, str):
            raise ValidationError("expected a list of steps", "how.steps")
        object.__setattr__(self, "steps", tuple(_require_text(s, "how.steps") for s in self.steps or ()))
        object.__setattr__(self, "parameters", _freeze(_as_mapping(self.parameters or {}, "how.parameters")))
        if isinstance(self.resources, Mapping):
            object.__setattr__(self, "resources", Resources.from_dict(self.resources))

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "approach": self.approach,
            "tools": list(self.tools),
            "model": self.model,
            "parameters": _thaw(self.parameters),
            "steps": list(self.steps),
            "resources": (self.resources.to_dict() or None) if self.resources else None,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Method":
        data = _as_mapping(data, "how")
        resources = data.get("resources")
        return cls(
            approach=data.get("approach") or "",
            tools=data.get("tools") or (),
            model=data.get("model"),
            parameters=data.get("parameters") or {},
            steps=data.get("steps") or (),
            resources=Resources.from_dict(resources) if resources else None,
        )


# ── cross references ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Evidence:
    """Pointer into the external blob store. The ledger never holds the blob."""

    id: str
    type: EvidenceType
    name: str
    mime_type: str
    size: int
    url: str
    hash: str
    captured_at: datetime
    captured_by: str
    description: Optional[str] = None

    def __post_init__(self):
        _require_text(self.id, "evidence.id")
        object.__setattr__(self, "type", coerce_enum(EvidenceType, self.type, "evidence.type"))
        _require_text(self.name, "evidence.name")
        _require_text(self.mime_type, "evidence.mime_type")
        _non_negative(self.size, "evidence.size")
        _require_text(self.url, "evidence.url")
        _require_text(self.hash, "evidence.hash")
        object.__setattr__(self, "captured_at", parse_timestamp(self.captured_at, "evidence.captured_at"))
        _require_text(self.captured_by, "evidence.captured_by")

    def matches(self, content: bytes) -> bool:
        """Cross-check fetched blob content against the recorded hash ("sha384:..." or bare sha256 hex)."""
        algorithm, _, digest = self.hash.rpartition(":")
        algorithm = algorithm.lower() or HashAlgorithm.SHA256.value
        if algorithm not in hashlib.algorithms_available:
            return False
        return hashlib.new(algorithm, content).hexdigest() == digest.lower()

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "mime_type": self.mime_type,
            "size": self.size,
            "url": self.url,
            "hash": self.hash,
            "captured_at": format_timestamp(self.captured_at),
            "captured_by": self.captured_by,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Evidence":
        data = _as_mapping(data, "evidence")
        return cls(
            id=data.get("id"),
            type=data.get("type"),
            name=data.get("name"),
            description=data.get("description"),
            mime_type=_pick(data, "mime_type", "mimeType"),
            size=data.get("size"),
            url=data.get("url"),
            hash=data.get("hash"),
            captured_at=_pick(data, "captured_at", "capturedAt"),
            captured_by=_pick(data, "captured_by", "capturedBy"),
        )


@dataclass(frozen=True)
class RelatedEntity:
    type: RelatedEntityType
    id: str
    relationship: Relationship
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "type", coerce_enum(RelatedEntityType, self.type, "related_entities.type"))
        _require_text(self.id, "related_entities.id")
        object.__setattr__(
            self, "relationship", coerce_enum(Relationship, self.relationship, "related_entities.relationship")
        )

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type.value,
            "id": self.id,
            "name": self.name,
            "relationship": self.relationship.value,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RelatedEntity":
        data = _as_mapping(data, "related_entities")
        return cls(type=data.get("type"), id=data.get("id"), name=data.get("name"),
                   relationship=data.get("relationship"))


@dataclass(frozen=True)
class Crypto:
    """Chain link for one entry. `signature`/`key_id` come from an external signer."""

    content_hash: str
    previous_hash: str
    algorithm: HashAlgorithm
    hashed_at: datetime
    signature: Optional[str] = None
    key_id: Optional[str] = None
    merkle_root: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "algorithm", coerce_enum(HashAlgorithm, self.algorithm, "crypto.algorithm"))
        object.__setattr__(self, "hashed_at", parse_timestamp(self.hashed_at, "crypto.hashed_at"))

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "content_hash": self.content_hash,
            "previous_hash": self.previous_hash,
            "algorithm": self.algorithm.value,
            "hashed_at": format_timestamp(self.hashed_at),
            "signature": self.signature,
            "key_id": self.key_id,
            "merkle_root": self.merkle_root,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Crypto":
        return cls(
            content_hash=_pick(data, "content_hash", "contentHash"),
            previous_hash=_pick(data, "previous_hash", "previousHash"),
            algorithm=data.get("algorithm", HashAlgorithm.SHA256),
            hashed_at=_pick(data, "hashed_at", "hashedAt"),
            signature=data.get("signature"),
            key_id=_pick(data, "key_id", "keyId"),
            merkle_root=_pick(data, "merkle_root", "merkleRoot"),
        )


@dataclass
class Annotation:
    """
    The only mutable part of an entry. Not hashed, so edits never touch the chain.
    Mutate through Ledger.annotate so the flagged index and storage stay in step.
    """

    is_flagged: bool = False
    review_status: Optional[ReviewStatus] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.review_status is not None:
            self.review_status = coerce_enum(ReviewStatus, self.review_status, "review_status")
        if self.updated_at is not None:
            self.updated_at = parse_timestamp(self.updated_at, "updated_at")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_flagged": self.is_flagged,
            "review_status": self.review_status.value if self.review_status else None,
            "notes": self.notes,
            "updated_at": format_timestamp(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Annotation":
        data = data or {}
        return cls(
            is_flagged=bool(_pick(data, "is_flagged", "isFlagged", default=False)),
            review_status=_pick(data, "review_status", "reviewStatus"),
            notes=data.get("notes"),
            updated_at=_pick(data, "updated_at", "updatedAt"),
        )


# ── payload & entry ──────────────────────────────────────────────────────────

def _records(values: Any, record_cls, field_name: str) -> tuple:
    if values is None:
        return ()
    if isinstance(values, (str, Mapping)):
        raise ValidationError("expected a list", field_name)
    return tuple(v if isinstance(v, record_cls) else record_cls.from_dict(v) for v in values)


@dataclass(frozen=True)
class SixWPayload:
    """What a collaborator submits for append. `when` may be left for the recorder to fill."""

    who: Actor
    what: Action
    why: Reason
    how: Method = field(default_factory=Method)
    where: Location = field(default_factory=Location)
    when: Optional[datetime] = None
    tags: Tuple[str, ...] = ()
    related_entities: Tuple[RelatedEntity, ...] = ()
    evidence: Tuple[Evidence, ...] = ()
    parent_id: Optional[str] = None

    def __post_init__(self):
        for name, record_cls in (("who", Actor), ("what", Action), ("why", Reason),
                                 ("how", Method), ("where", Location)):
            value = getattr(self, name)
            if isinstance(value, Mapping):
                object.__setattr__(self, name, record_cls.from_dict(value))
            elif not isinstance(value, record_cls):
                raise ValidationError(f"expected {record_cls.__name__}", name)
        if self.when is not None:
            object.__setattr__(self, "when", parse_timestamp(self.when))
        object.__setattr__(self, "tags", _text_tuple(self.tags, "tags"))
        object.__setattr__(self, "related_entities",
                           _records(self.related_entities, RelatedEntity, "related_entities"))
        object.__setattr__(self, "evidence", _records(self.evidence, Evidence, "evidence"))
        _optional_text(self.parent_id, "parent_id")

    def with_when(self, when: datetime) -> "SixWPayload":
        return replace(self, when=when)

    def six_w_dict(self) -> Dict[str, Any]:
        """The hashed part of an entry: exactly who/what/when/where/why/how."""
        if self.when is None:
            raise ValidationError("timestamp not set", "when")
        return {
            "who": self.who.to_dict(),
            "what": self.what.to_dict(),
            "when": format_timestamp(self.when),
            "where": self.where.to_dict(),
            "why": self.why.to_dict(),
            "how": self.how.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SixWPayload":
        data = _as_mapping(data, "payload")
        for required in ("who", "what", "why", "how"):
            if data.get(required) is None:
                raise ValidationError("missing", required)
        return cls(
            who=Actor.from_dict(data["who"]),
            what=Action.from_dict(data["what"]),
            why=Reason.from_dict(data["why"]),
            how=Method.from_dict(data["how"]),
            where=Location.from_dict(data.get("where")),
            when=data.get("when"),
            tags=data.get("tags") or (),
            related_entities=_pick(data, "related_entities", "relatedEntities") or (),
            evidence=data.get("evidence") or (),
            parent_id=_pick(data, "parent_id", "parentId"),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """
    One immutable record. Everything except `annotation` is fixed at creation;
    `annotation` is excluded from equality and from the content hash.
    """

    id: str
    sequence: int
    who: Actor
    what: Action
    when: datetime
    where: Location
    why: Reason
    how: Method
    crypto: Crypto
    tags: Tuple[str, ...] = ()
    related_entities: Tuple[RelatedEntity, ...] = ()
    evidence: Tuple[Evidence, ...] = ()
    parent_id: Optional[str] = None
    annotation: Annotation = field(default_factory=Annotation, compare=False)

    @property
    def is_flagged(self) -> bool:
        return self.annotation.is_flagged

    @property
    def review_status(self) -> Optional[ReviewStatus]:
        return self.annotation.review_status

    @property
    def notes(self) -> Optional[str]:
        return self.annotation.notes

    @property
    def created_at(self) -> datetime:
        return self.crypto.hashed_at

    def payload(self) -> SixWPayload:
        return SixWPayload(
            who=self.who, what=self.what, why=self.why, how=self.how, where=self.where,
            when=self.when, tags=self.tags, related_entities=self.related_entities,
            evidence=self.evidence, parent_id=self.parent_id,
        )

    def six_w_dict(self) -> Dict[str, Any]:
        return self.payload().six_w_dict()

    def summary(self) -> str:
        return f"[{format_timestamp(self.when)}] {self.who.name} {self.what.description} in {self.where.display_name}"

    def immutable_dict(self) -> Dict[str, Any]:
        """Everything that must round-trip unchanged through storage (no annotation)."""
        return {
            "id": self.id,
            "sequence": self.sequence,
            **self.six_w_dict(),
            **_compact({
                "tags": list(self.tags),
                "related_entities": [r.to_dict() for r in self.related_entities],
                "evidence": [e.to_dict() for e in self.evidence],
                "parent_id": self.parent_id,
            }),
            "crypto": self.crypto.to_dict(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {**self.immutable_dict(), "annotation": self.annotation.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LedgerEntry":
        payload = SixWPayload.from_dict(data)
        return cls(
            id=data["id"],
            sequence=int(data["sequence"]),
            who=payload.who,
            what=payload.what,
            when=parse_timestamp(data["when"]),
            where=payload.where,
            why=payload.why,
            how=payload.how,
            crypto=Crypto.from_dict(data["crypto"]),
            tags=payload.tags,
            related_entities=payload.related_entities,
            evidence=payload.evidence,
            parent_id=payload.parent_id,
            annotation=Annotation.from_dict(data.get("annotation")),
        )
