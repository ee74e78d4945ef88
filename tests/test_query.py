# tests/test_query.py
from bisect import insort
from datetime import timedelta
from itertools import product

import pytest

from symtex_ledger.config import LedgerConfig
from symtex_ledger.core.cancel import CancelToken
from symtex_ledger.core.errors import IndexInconsistencyWarning, OperationCancelled, QueryError
from symtex_ledger.core.types import ActorType, Category, Severity
from symtex_ledger.index.manager import Dimension
from symtex_ledger.ledger import Ledger
from symtex_ledger.query.engine import QueryEngine
from symtex_ledger.query.filters import LedgerFilter, LedgerSort, Pagination

from conftest import BASE_TIME, make_payload

ALL = {"page_size": 100}


def sequences(led, flt=None, sort=None, pagination=ALL):
    return led.query(flt, sort, pagination).sequences


def test_actor_type_scenario():
    led = Ledger(config=LedgerConfig(initial_sequence=1001))
    led.append(make_payload(actor_type="cognate", actor_id="cog-support"))
    led.append(make_payload(actor_type="user", actor_id="user-jsmith"))
    led.append(make_payload(actor_type="system", actor_id="sys-monitor"))

    page = led.query({"actorType": ["cognate"]})
    assert page.sequences == [1001]
    assert page.total_count == 1


def test_only_critical_entry_scenario(seeded):
    page = seeded.query({"severity": ["critical"]}, {"field": "sequence", "direction": "desc"})
    assert page.sequences == [1015]
    assert page.total_count == 1
    assert page.has_more is False


def test_default_sort_is_newest_first(seeded):
    # the demo data is numbered newest-first
    assert sequences(seeded) == list(range(1001, 1021))
    assert sequences(seeded, sort={"field": "when", "direction": "asc"}) == list(range(1020, 1000, -1))


def test_filters_and_across_predicates(seeded):
    flt = {"actor_type": ["cognate"], "space_id": ["space-support"]}
    assert sequences(seeded, flt, {"field": "sequence", "direction": "asc"}) == [1001, 1005, 1013]

    flt = {"actor_type": ["user"], "category": ["deletion"]}
    assert sequences(seeded, flt) == [1014]


@pytest.mark.parametrize("categories, severities, actor_types", [
    (["action"], ["info"], None),
    (["action", "change"], ["info", "notice"], ["cognate"]),
    (["change", "error", "escalation"], ["warning", "error", "critical"], None),
    (["approval", "deletion"], ["info", "warning"], ["user", "system"]),
    (["action"], ["critical"], ["cognate"]),
    (["communication", "creation", "decision"], ["info"], ["cognate", "automation", "integration"]),
])
def test_filter_composition_is_an_intersection(seeded, categories, severities, actor_types):
    flt = {"category": categories, "severity": severities}
    singles = [{"category": categories}, {"severity": severities}]
    if actor_types:
        flt["actor_type"] = actor_types
        singles.append({"actor_type": actor_types})

    expected = set.intersection(*(set(sequences(seeded, single)) for single in singles))
    page = seeded.query(flt, None, ALL)
    scanned = QueryEngine(seeded.store, index=None).query(flt, None, ALL)

    assert not page.degraded
    assert set(page.sequences) == expected
    assert page.sequences == scanned.sequences
    assert page.total_count == len(expected)


def test_index_and_scan_agree_on_every_combination(seeded):
    scan = QueryEngine(seeded.store, index=None)
    total = 0
    for category, severity, actor_type in product(Category, Severity, ActorType):
        flt = {"category": [category.value], "severity": [severity.value], "actor_type": [actor_type.value]}
        indexed = seeded.query(flt, None, ALL).sequences
        assert indexed == scan.query(flt, None, ALL).sequences, flt
        total += len(indexed)
    # every entry carries exactly one value per dimension
    assert total == len(seeded)


def test_filters_or_within_predicate(seeded):
    asc = {"field": "sequence", "direction": "asc"}
    assert sequences(seeded, {"category": ["approval", "deletion"]}, asc) == [1002, 1014]
    assert sequences(seeded, {"tags": ["slack", "salesforce"]}, asc) == [1006, 1019]
    assert sequences(seeded, {"actor_id": ["user-jsmith"]}, asc) == [1002, 1009, 1014]
    assert sequences(seeded, {"project_id": ["proj-automation"]}, asc) == [1002, 1014]
    assert sequences(seeded, {"status": ["failed"]}, asc) == [1007]


def test_flagged_only(seeded):
    assert sequences(seeded, {"flagged_only": True}) == [1003, 1007, 1015]
    seeded.flag(1003, False)
    assert sequences(seeded, {"flaggedOnly": True}) == [1007, 1015]
    assert sequences(seeded, {"flagged_only": True, "severity": ["critical"]}) == [1015]


def test_date_range_is_inclusive(seeded):
    flt = {"date_range": {"from": BASE_TIME - timedelta(hours=12), "to": BASE_TIME - timedelta(hours=4)}}
    assert sequences(seeded, flt) == [1004, 1005, 1006, 1007, 1008]

    flt = {"dateRange": {"from": "2026-01-31T13:30:00Z", "to": "2026-01-31T13:30:00Z"}}
    assert sequences(seeded, flt) == [1001]


def test_search_is_case_insensitive(seeded):
    asc = {"field": "sequence", "direction": "asc"}
    assert sequences(seeded, {"search": "JOHN"}, asc) == [1002, 1009, 1014]  # actor name
    assert sequences(seeded, {"search": "billing"}, asc) == [1001]  # tag
    assert sequences(seeded, {"search": "Rate Limit"}, asc) == [1003]  # description
    assert sequences(seeded, {"search": "  "}, asc) == list(range(1001, 1021))


def test_sort_by_severity_is_stable(seeded):
    desc = sequences(seeded, sort={"field": "severity", "direction": "desc"})
    assert desc[:8] == [1015, 1007, 1003, 1002, 1005, 1008, 1014, 1017]

    asc = sequences(seeded, sort={"field": "severity", "direction": "asc"})
    assert asc[:12] == [1001, 1004, 1006, 1009, 1010, 1011, 1012, 1013, 1016, 1018, 1019, 1020]
    assert asc[-1] == 1015


def test_sort_by_category(seeded):
    result = sequences(seeded, sort={"field": "category", "direction": "asc"})
    assert result[:6] == [1011, 1001, 1012, 1016, 1018, 1020]
    assert result[-2:] == [1003, 1015]


def test_equal_timestamps_tie_break_by_sequence(ledger):
    for i in range(4):
        ledger.append(make_payload(description=f"same instant {i}", when="2026-01-31T14:00:00Z"))
    assert sequences(ledger) == [1, 2, 3, 4]
    assert sequences(ledger, sort={"field": "when", "direction": "asc"}) == [1, 2, 3, 4]


def test_page_number_pagination_covers_everything(seeded):
    seen = []
    for page_number in (1, 2, 3):
        page = seeded.query(None, None, {"page": page_number, "page_size": 7})
        assert page.total_count == 20
        assert page.total_pages == 3
        assert page.page == page_number
        assert page.has_more is (page_number < 3)
        seen.extend(page.sequences)
    assert sorted(seen) == list(range(1001, 1021))
    assert len(seen) == len(set(seen))

    beyond = seeded.query(None, None, {"page": 4, "page_size": 7})
    assert beyond.sequences == []
    assert beyond.has_more is False


def test_default_page_size(seeded):
    page = seeded.query()
    assert len(page) == 10
    assert page.page_size == 10
    assert page.total_pages == 2


def test_cursor_pagination_matches_page_walk(seeded):
    sort = {"field": "severity", "direction": "desc"}
    flt = {"actor_type": ["cognate", "user"]}
    expected = sequences(seeded, flt, sort)

    walked, cursor = [], None
    while True:
        page = seeded.query(flt, sort, {"page_size": 4, "cursor": cursor})
        walked.extend(page.sequences)
        if not page.has_more:
            assert page.next_cursor is None
            break
        cursor = page.next_cursor
    assert walked == expected


def test_cursor_survives_concurrent_appends(ledger):
    for i in range(5):
        ledger.append(make_payload(description=f"event {i}"))
    sort = {"field": "sequence", "direction": "asc"}
    first = ledger.query(None, sort, {"page_size": 3})
    assert first.sequences == [1, 2, 3]

    ledger.append(make_payload(description="late arrival"))
    second = ledger.query(None, sort, {"page_size": 3, "cursor": first.next_cursor})
    assert second.sequences == [4, 5, 6]
    assert second.page is None


def test_cursor_is_bound_to_query(seeded):
    page = seeded.query({"category": ["action"]}, None, {"page_size": 2})
    with pytest.raises(QueryError, match="different filter"):
        seeded.query({"category": ["change"]}, None, {"page_size": 2, "cursor": page.next_cursor})
    with pytest.raises(QueryError, match="different sort"):
        seeded.query({"category": ["action"]}, {"field": "sequence"}, {"page_size": 2, "cursor": page.next_cursor})
    with pytest.raises(QueryError, match="invalid cursor"):
        seeded.query(None, None, {"cursor": "not-a-cursor"})


@pytest.mark.parametrize("flt, sort, pagination", [
    ({"category": ["gossip"]}, None, None),
    ({"actorType": ["robot"]}, None, None),
    ({"colour": ["red"]}, None, None),
    ({"date_range": {"from": "2026-02-01T00:00:00Z", "to": "2026-01-01T00:00:00Z"}}, None, None),
    ({"tags": [""]}, None, None),
    (None, {"field": "mood"}, None),
    (None, {"direction": "sideways"}, None),
    (None, None, {"page": 0}),
    (None, None, {"page_size": 0}),
    (None, None, {"page_size": 501}),
])
def test_invalid_query_parameters(seeded, flt, sort, pagination):
    with pytest.raises(QueryError):
        seeded.query(flt, sort, pagination)


def test_typed_parameters(seeded):
    page = seeded.query(
        LedgerFilter(actor_type=["system"]),
        LedgerSort(field="sequence", direction="asc"),
        Pagination(page=1, page_size=5),
    )
    assert page.sequences == [1003, 1015]


def test_query_is_pure(seeded):
    args = ({"tags": ["support"]}, {"field": "when"}, {"page_size": 2})
    assert seeded.query(*args) == seeded.query(*args)


def test_missing_bucket_entry_degrades_to_full_scan(seeded):
    seeded.index._buckets[(Dimension.ACTOR_TYPE, "cognate")].remove(1020)
    with pytest.warns(IndexInconsistencyWarning):
        page = seeded.query({"actor_type": ["cognate"]}, None, ALL)
    assert page.degraded is True
    assert page.warnings
    assert page.total_count == 9
    assert 1020 in page.sequences


def test_wrong_bucket_entry_degrades_to_full_scan(seeded):
    insort(seeded.index._buckets[(Dimension.ACTOR_TYPE, "cognate")], 1002)
    with pytest.warns(IndexInconsistencyWarning):
        page = seeded.query({"actor_type": ["cognate"]}, None, ALL)
    assert page.degraded is True
    assert 1002 not in page.sequences
    assert page.total_count == 9


def test_stale_index_degrades(seeded):
    seeded.index.mark_stale("update failed")
    with pytest.warns(IndexInconsistencyWarning, match="stale"):
        page = seeded.query({"severity": ["critical"]})
    assert page.sequences == [1015]
    assert page.degraded

    seeded.rebuild_index()
    assert seeded.query({"severity": ["critical"]}).degraded is False


def test_healthy_index_is_not_degraded(seeded):
    page = seeded.query({"actor_type": ["cognate"]})
    assert page.degraded is False
    assert page.warnings == ()


def test_query_is_cancellable(seeded):
    token = CancelToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        seeded.query({"search": "cognate"}, cancel=token)
