# tests/test_verify.py
import secrets
from dataclasses import replace

import pytest

from symtex_ledger.core.cancel import CancelToken
from symtex_ledger.core.errors import ChainIntegrityError, OperationCancelled, QueryError
from symtex_ledger.crypto.hashing import compute_content_hash
from symtex_ledger.ledger import Ledger
from symtex_ledger.verify.verifier import ChainVerifier, VerificationResult

from conftest import make_payload


def create_test_chain(n_entries=5, **ledger_kwargs) -> Ledger:
    led = Ledger(**ledger_kwargs)
    for i in range(n_entries):
        actor = "cognate" if i % 2 == 0 else "user"
        led.append(make_payload(actor_type=actor, actor_id=f"{actor}-{i}", description=f"Event #{i}",
                                when=f"2026-01-31T14:00:{i:02d}Z"))
    return led


def corrupt(led: Ledger, sequence: int, **changes):
    """Swap a stored entry for a modified copy, bypassing the recorder."""
    snapshot = led.snapshot()
    position = sequence - snapshot.first_sequence
    original = snapshot.at(position)
    if "crypto" in changes and isinstance(changes["crypto"], dict):
        changes["crypto"] = replace(original.crypto, **changes["crypto"])
    led.store._entries[position] = replace(original, **changes)


def test_valid_chain():
    result = create_test_chain(6).verify()
    assert result.is_valid is True
    assert result.broken_at is None
    assert result.checked == 6
    assert "6 entries" in result.message
    assert bool(result) is True


def test_empty_ledger_is_valid():
    result = Ledger().verify()
    assert result.is_valid
    assert result.checked == 0


def test_tamper_content():
    led = create_test_chain(5)
    corrupt(led, 3, what=replace(led.get(3).what, description="HACKED CONTENT"))
    result = led.verify()
    assert result.is_valid is False
    assert result.broken_at == 3
    assert result.failure.category == "content_hash"


def test_tamper_who():
    led = create_test_chain(5)
    corrupt(led, 2, who=replace(led.get(2).who, id="someone-else"))
    assert led.verify().broken_at == 2


def test_corrupted_previous_hash_breaks_at_that_entry():
    led = create_test_chain(1)
    corrupt(led, 1, crypto={"previous_hash": secrets.token_hex(32)})
    result = led.verify(1, led.tail.sequence)
    assert result.broken_at == 1
    assert result.failure.category == "hash_chain"


def test_broken_hash_link_mid_chain():
    led = create_test_chain(5)
    corrupt(led, 4, crypto={"previous_hash": "deadbeef" * 8})
    result = led.verify()
    assert result.broken_at == 4
    assert "previous_hash" in result.message


def test_recomputed_hash_still_breaks_next_link():
    led = create_test_chain(5)
    tampered = replace(led.get(2).what, description="rewritten history")
    corrupt(led, 2, what=tampered)
    # attacker also fixes the entry's own hash, so the break shows up at the next link
    corrupt(led, 2, crypto={"content_hash": compute_content_hash(led.get(2))})
    assert led.verify().broken_at == 3


def test_stops_at_first_failure():
    led = create_test_chain(6)
    corrupt(led, 2, what=replace(led.get(2).what, description="first"))
    corrupt(led, 5, what=replace(led.get(5).what, description="second"))
    result = led.verify()
    assert result.broken_at == 2
    assert result.checked == 1


def test_wrong_sequence():
    led = create_test_chain(4)
    entries = led.snapshot().to_list()
    entries[2] = replace(entries[2], sequence=99)
    result = ChainVerifier().verify_entries(entries)
    assert result.is_valid is False
    assert result.failure.category == "sequence"
    assert result.broken_at == 99


def test_range_verification_uses_preceding_entry():
    led = create_test_chain(8)
    result = led.verify(4, 6)
    assert result.is_valid
    assert (result.first_sequence, result.last_sequence, result.checked) == (4, 6, 3)

    corrupt(led, 3, what=replace(led.get(3).what, description="outside the range"))
    # entry 3's own content is outside [4, 6]; its recorded hash still links
    assert led.verify(4, 6).is_valid
    assert led.verify(2, 6).broken_at == 3


def test_range_is_clamped_to_ledger():
    led = create_test_chain(3)
    result = led.verify(0, 100)
    assert result.is_valid
    assert result.checked == 3
    assert led.verify(50, 60).checked == 0


def test_inverted_range_rejected():
    led = create_test_chain(3)
    with pytest.raises(QueryError):
        led.verify(3, 1)


def test_broken_chain_is_alerted():
    alerts = []
    led = create_test_chain(3, alert_sink=alerts.append)
    assert led.verify().is_valid
    assert alerts == []

    corrupt(led, 2, what=replace(led.get(2).what, description="tampered"))
    led.verify()
    assert len(alerts) == 1
    assert isinstance(alerts[0], ChainIntegrityError)
    assert alerts[0].sequence == 2


def test_default_alert_logs_critical(caplog):
    led = create_test_chain(3)
    corrupt(led, 2, what=replace(led.get(2).what, description="tampered"))
    with caplog.at_level("CRITICAL"):
        led.verify()
    assert any(record.levelname == "CRITICAL" and "sequence 2" in record.getMessage()
               for record in caplog.records)


def test_signature_check_is_pass_through():
    class FakeSigner:
        key_id = "kms-1"

        def sign(self, content_hash):
            return "good"

    led = create_test_chain(3, signer=FakeSigner(),
                            signature_check=lambda entry: entry.crypto.signature == "good")
    assert led.verify().is_valid

    corrupt(led, 2, crypto={"signature": "forged"})
    result = led.verify()
    assert result.broken_at == 2
    assert result.failure.category == "signature"


def test_verification_is_cancellable():
    led = create_test_chain(3)
    token = CancelToken()
    token.cancel()
    with pytest.raises(OperationCancelled, match="cancelled"):
        led.verify(cancel=token)

    expired = CancelToken(timeout=0)
    with pytest.raises(OperationCancelled, match="timed out"):
        led.verify(cancel=expired)


def test_snapshot_ignores_later_appends():
    led = create_test_chain(3)
    snapshot = led.snapshot()
    led.append(make_payload())
    assert len(snapshot) == 3
    assert [entry.sequence for entry in snapshot] == [1, 2, 3]


def test_result_str():
    assert "✓" in str(VerificationResult(checked=2, first_sequence=1, last_sequence=2))
    led = create_test_chain(3)
    corrupt(led, 2, what=replace(led.get(2).what, description="x"))
    assert "broken at sequence 2" in str(led.verify())
