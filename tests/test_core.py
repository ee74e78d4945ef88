# tests/test_core.py
import pytest
from datetime import datetime, timezone

from symtex_ledger.core.canon import canonical_json
from symtex_ledger.core.encoding import b64url_decode, b64url_encode, decode_token, encode_token
from symtex_ledger.core.errors import ValidationError
from symtex_ledger.core.types import (
    Action,
    Actor,
    ActorType,
    Annotation,
    Evidence,
    Location,
    Reason,
    Severity,
    SixWPayload,
    format_timestamp,
    parse_timestamp,
)

from conftest import make_payload


def test_canonical_json_is_deterministic():
    obj1 = {"b": 2, "a": 1, "c": [3, 1, 2]}
    obj2 = {"c": [3, 1, 2], "a": 1, "b": 2}
    assert canonical_json(obj1) == canonical_json(obj2)
    assert canonical_json(obj1) == b'{"a":1,"b":2,"c":[3,1,2]}'


def test_canonical_json_normalizes_enums_and_datetimes():
    when = datetime(2026, 1, 31, 14, 0, tzinfo=timezone.utc)
    assert canonical_json({"t": ActorType.USER, "w": when}) == canonical_json(
        {"t": "user", "w": "2026-01-31T14:00:00.000000Z"}
    )


def test_b64url_encoding():
    data = b"hello world"
    encoded = b64url_encode(data)
    assert "=" not in encoded
    assert b64url_decode(encoded) == data


def test_token_rejects_garbage():
    assert decode_token(encode_token({"s": 5})) == {"s": 5}
    with pytest.raises(ValueError, match="malformed"):
        decode_token("not-a-token!!")
    with pytest.raises(ValueError, match="not an object"):
        decode_token(b64url_encode(b"[1,2]"))


def test_severity_is_ordered():
    assert Severity.DEBUG.rank < Severity.INFO.rank < Severity.NOTICE.rank
    assert Severity.WARNING.rank < Severity.ERROR.rank < Severity.CRITICAL.rank


def test_actor_name_defaults_to_id():
    actor = Actor(type="user", id="user-jsmith")
    assert actor.type is ActorType.USER
    assert actor.name == "user-jsmith"


@pytest.mark.parametrize("field_name, overrides", [
    ("who.type", {"who": {"type": "robot", "id": "x"}}),
    ("who.id", {"who": {"type": "user", "id": "  "}}),
    ("what.type", {"what": {"type": "", "category": "action", "severity": "info"}}),
    ("what.category", {"what": {"type": "t", "category": "gossip", "severity": "info"}}),
    ("what.severity", {"what": {"type": "t", "category": "action", "severity": "loud"}}),
    ("why.trigger", {"why": {"trigger": "whim"}}),
])
def test_invalid_payload_fields_rejected(field_name, overrides):
    payload = {**make_payload(), **overrides}
    with pytest.raises(ValidationError) as excinfo:
        SixWPayload.from_dict(payload)
    assert excinfo.value.field == field_name


@pytest.mark.parametrize("missing", ["who", "what", "why", "how"])
def test_missing_dimension_rejected(missing):
    payload = make_payload()
    del payload[missing]
    with pytest.raises(ValidationError, match=missing):
        SixWPayload.from_dict(payload)


def test_where_and_when_are_optional():
    payload = make_payload(space_id=None)
    del payload["where"]
    coerced = SixWPayload.from_dict(payload)
    assert coerced.where.is_empty
    assert coerced.when is None


def test_confidence_bounds():
    with pytest.raises(ValidationError, match="between 0 and 1"):
        Reason(trigger="user_request", confidence=1.5)
    assert Reason(trigger="user_request", confidence=0.94).confidence == 0.94


def test_negative_duration_rejected():
    with pytest.raises(ValidationError, match="negative"):
        Action(type="t", category="action", severity="info", duration=-1)


def test_location_accepts_camel_case():
    where = Location.from_dict({"spaceId": "space-support", "spaceName": "Customer Support"})
    assert where.space_id == "space-support"
    assert where.display_name == "Customer Support"
    assert Location().display_name == "Unknown location"


def test_timestamps_are_utc_and_lossless():
    parsed = parse_timestamp("2026-01-31T15:00:00.123456+01:00")
    assert parsed.tzinfo == timezone.utc
    assert parsed.hour == 14
    assert parse_timestamp(format_timestamp(parsed)) == parsed
    assert format_timestamp(parsed).endswith("Z")

    with pytest.raises(ValidationError):
        parse_timestamp("yesterday")


def test_payload_is_frozen():
    payload = SixWPayload.from_dict(make_payload())
    with pytest.raises(Exception):
        payload.tags = ("changed",)
    with pytest.raises(TypeError):
        payload.how.parameters["temperature"] = 1.0


def test_tags_are_deduplicated_in_order():
    payload = SixWPayload.from_dict(make_payload(tags=["support", "billing", "support"]))
    assert payload.tags == ("support", "billing")


def test_six_w_dict_requires_when():
    payload = SixWPayload.from_dict(make_payload())
    with pytest.raises(ValidationError, match="when"):
        payload.six_w_dict()
    stamped = payload.with_when("2026-01-31T14:00:00Z")
    assert set(stamped.six_w_dict()) == {"who", "what", "when", "where", "why", "how"}


def test_annotation_round_trip():
    note = Annotation(is_flagged=True, review_status="pending", notes="check this",
                      updated_at="2026-01-31T14:00:00Z")
    restored = Annotation.from_dict(note.to_dict())
    assert restored == note
    assert Annotation.from_dict({"isFlagged": True}).is_flagged is True


def test_evidence_matches_content():
    import hashlib

    blob = b"screenshot bytes"
    evidence = Evidence(
        id="ev-1", type="screenshot", name="error.png", mime_type="image/png", size=len(blob),
        url="https://blobs.example/ev-1", hash=f"sha256:{hashlib.sha256(blob).hexdigest()}",
        captured_at="2026-01-31T14:00:00Z", captured_by="cog-support",
    )
    assert evidence.matches(blob) is True
    assert evidence.matches(b"something else") is False


def test_evidence_with_unknown_hash_algorithm_does_not_match():
    from dataclasses import replace

    evidence = Evidence(
        id="ev-2", type="document", name="report.pdf", mime_type="application/pdf", size=4,
        url="https://blobs.example/ev-2", hash="md6:" + "0" * 64,
        captured_at="2026-01-31T14:00:00Z", captured_by="cog-research",
    )
    assert evidence.matches(b"data") is False
    upper = replace(evidence, hash="SHA384:" + "0" * 96)
    assert upper.matches(b"data") is False
