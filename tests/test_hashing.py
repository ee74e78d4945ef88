# tests/test_hashing.py
import hashlib

import pytest

from symtex_ledger.core.canon import canonical_json
from symtex_ledger.core.types import SixWPayload
from symtex_ledger.crypto.hashing import (
    GENESIS_HASH,
    compute_content_hash,
    digest,
    link_hash,
    merkle_root,
)

from conftest import make_payload


def stamped(**kwargs) -> SixWPayload:
    return SixWPayload.from_dict(make_payload(when="2026-01-31T14:00:00Z", **kwargs))


def test_content_hash_is_sha256_of_canonical_six_w():
    payload = stamped()
    expected = hashlib.sha256(canonical_json(payload.six_w_dict())).hexdigest()
    assert compute_content_hash(payload) == expected
    assert len(expected) == 64


def test_content_hash_ignores_key_order_and_spelling():
    data = make_payload(when="2026-01-31T14:00:00Z")
    camel = {**data, "where": {"spaceId": "space-support"}}
    assert compute_content_hash(SixWPayload.from_dict(data)) == compute_content_hash(SixWPayload.from_dict(camel))


def test_content_hash_excludes_tags_and_references():
    plain = stamped()
    tagged = stamped(tags=["support", "billing"], parent_id="led-parent")
    assert compute_content_hash(plain) == compute_content_hash(tagged)


def test_content_hash_changes_with_any_dimension():
    base = compute_content_hash(stamped())
    assert compute_content_hash(stamped(description="Something else")) != base
    assert compute_content_hash(stamped(severity="warning")) != base
    assert compute_content_hash(SixWPayload.from_dict(make_payload(when="2026-01-31T14:00:01Z"))) != base


@pytest.mark.parametrize("algorithm, length", [("sha256", 64), ("sha384", 96), ("sha512", 128)])
def test_supported_algorithms(algorithm, length):
    assert len(compute_content_hash(stamped(), algorithm)) == length


def test_link_hash_genesis_and_previous(ledger):
    assert link_hash(None) == GENESIS_HASH == "0" * 64
    first = ledger.append(make_payload())
    assert link_hash(first) == first.crypto.content_hash


def test_merkle_root():
    leaves = [digest(str(i).encode()) for i in range(3)]
    assert merkle_root([]) is None
    assert merkle_root(leaves[:1]) == leaves[0]

    pair = digest(bytes.fromhex(leaves[0]) + bytes.fromhex(leaves[1]))
    assert merkle_root(leaves[:2]) == pair
    # odd node carried up unchanged
    assert merkle_root(leaves) == digest(bytes.fromhex(pair) + bytes.fromhex(leaves[2]))
