import csv
import io
import json

import pytest

from pawtype.app.errors import ImportFailed, PersistenceFailed
from pawtype.db.gateway import InMemoryGateway
from pawtype.db.models import Submission
from pawtype.reporting.aggregation import (
    DELIMITED_COLUMNS,
    AggregationEngine,
    aggregate_submissions,
    load_structured,
    sort_submissions,
    write_export,
)

from conftest import make_submission

OWNER = "owner-a"


@pytest.fixture
def engine(gateway):
    eng = AggregationEngine(gateway, OWNER)
    eng.attach()
    return eng


def _fill(gateway, *subs):
    for s in subs:
        gateway.create(s, OWNER)


def _csv_rows(payload):
    text = payload.data.decode("utf-8-sig")
    return list(csv.reader(io.StringIO(text)))


def test_category_counts_scenario(gateway, engine):
    _fill(gateway, make_submission("ISTJ"), make_submission("ISTJ"), make_submission("ENFP"))
    tables = engine.aggregate()
    assert tables.category_counts == {"ISTJ": 2, "ENFP": 1}


def test_expert_and_fee_tables(gateway, engine):
    _fill(
        gateway,
        make_submission(experts=("Veterinarian", "Trainer"), fee="Under $10"),
        make_submission(experts=("Trainer",), other="Dog walker", fee="Under $10"),
        make_submission(experts=(), fee=None),
    )
    tables = engine.aggregate()
    assert tables.expert_counts == {"Trainer": 2, "Dog walker": 1, "Veterinarian": 1}
    assert list(tables.expert_counts) == ["Trainer", "Dog walker", "Veterinarian"]
    assert tables.fee_counts == {"Under $10": 2}


def test_aggregate_of_nothing_is_empty():
    tables = aggregate_submissions([])
    assert tables.category_counts == {}
    assert tables.expert_counts == {}
    assert tables.fee_counts == {}


def test_live_updates_recompute_tables(gateway, engine):
    _fill(gateway, make_submission("ISTJ"))
    assert engine.aggregate().category_counts == {"ISTJ": 1}
    _fill(gateway, make_submission("ISTJ"))
    assert engine.aggregate().category_counts == {"ISTJ": 2}
    gateway.create(make_submission("ENFP"), "someone-else")
    assert engine.aggregate().category_counts == {"ISTJ": 2}


def test_neutral_filter_returns_everything(gateway, engine):
    subs = [make_submission(code, minutes=i) for i, code in enumerate(["ISTJ", "ENFP", "INTP"])]
    _fill(gateway, *subs)
    for order in ("newest", "oldest", "by_category"):
        view = engine.view("", "all", order)
        assert sorted(s.submission_id for s in view) == sorted(s.submission_id for s in subs)
        assert view == engine.sort(order)


def test_keyword_filter_is_case_insensitive_over_all_fields(gateway, engine):
    _fill(
        gateway,
        make_submission("ISTJ", new_service="Grooming at HOME"),
        make_submission("ENFP", feedback="The vet was great"),
        make_submission("INTP", nickname="The Dreamy Thinker"),
    )
    assert [s.category_code for s in engine.filter("home")] == ["ISTJ"]
    assert [s.category_code for s in engine.filter("VET WAS")] == ["ENFP"]
    assert [s.category_code for s in engine.filter("dreamy")] == ["INTP"]
    assert len(engine.filter("enfp")) == 1


def test_keyword_and_category_compose(gateway, engine):
    _fill(
        gateway,
        make_submission("ISTJ", new_service="daycare"),
        make_submission("ISTJ", new_service="grooming"),
        make_submission("ENFP", new_service="daycare"),
    )
    hits = engine.filter("daycare", "ISTJ")
    assert len(hits) == 1
    assert hits[0].category_code == "ISTJ"
    assert len(engine.filter("", "ENFP")) == 1
    assert engine.filter("daycare", "INTJ") == []


def test_sort_orders_with_timestamp_ties():
    a = make_submission("INTP", minutes=0, submission_id="b")
    b = make_submission("ESTJ", minutes=0, submission_id="a")
    c = make_submission("ENFP", minutes=5, submission_id="c")
    subs = [a, b, c]

    assert [s.submission_id for s in sort_submissions(subs, "newest")] == ["c", "a", "b"]
    assert [s.submission_id for s in sort_submissions(subs, "oldest")] == ["a", "b", "c"]
    assert [s.category_code for s in sort_submissions(subs, "by_category")] == ["ENFP", "ESTJ", "INTP"]
    # Input order never leaks into the result.
    assert sort_submissions(list(reversed(subs)), "newest") == sort_submissions(subs, "newest")


def test_unknown_sort_order():
    with pytest.raises(ValueError):
        sort_submissions([make_submission()], "random")


def test_delimited_export_uses_filtered_sorted_view(gateway, engine):
    _fill(
        gateway,
        make_submission("ISTJ", minutes=1, experts=("Trainer", "Groomer"), other="Walker",
                        new_service='Pick-up, drop-off\nand "more"', fee="$10-$20"),
        make_submission("ENFP", minutes=2),
        make_submission("ISTJ", minutes=3, new_service="plain"),
    )
    payload = engine.export_delimited(category_code="ISTJ", order="oldest")
    assert payload.mime_type == "text/csv"
    assert payload.filename.endswith(".csv")
    assert payload.data.startswith(b"\xef\xbb\xbf")

    rows = _csv_rows(payload)
    assert rows[0] == DELIMITED_COLUMNS
    assert len(rows[0]) == 8
    assert len(rows) == 3
    first = dict(zip(rows[0], rows[1]))
    assert first["category_code"] == "ISTJ"
    assert first["preferred_experts"] == "Trainer|Groomer|Walker"
    assert first["new_service"] == 'Pick-up, drop-off\nand "more"'
    assert first["fee"] == "$10-$20"
    assert dict(zip(rows[0], rows[2]))["new_service"] == "plain"


def test_delimited_export_of_empty_view_has_header_only(engine):
    rows = _csv_rows(engine.export_delimited())
    assert rows == [DELIMITED_COLUMNS]


def test_custom_expert_delimiter(gateway):
    eng = AggregationEngine(gateway, OWNER, expert_delimiter="; ")
    _fill(gateway, make_submission(experts=("Trainer", "Groomer")))
    eng.load()
    rows = _csv_rows(eng.export_delimited())
    assert rows[1][4] == "Trainer; Groomer"


def test_structured_export_round_trip(gateway, engine):
    subs = [
        make_submission("ISTJ", minutes=0, other="Walker", feedback="ok"),
        make_submission("ENFP", minutes=1, experts=(), fee=None),
    ]
    _fill(gateway, *subs)
    payload = engine.export_structured()
    assert payload.mime_type == "application/json"

    raw = json.loads(payload.data.decode("utf-8"))
    assert isinstance(raw, list) and len(raw) == 2
    assert payload.data.decode("utf-8").startswith("[\n  {")

    restored = load_structured(payload.data)
    assert [r.to_dict() for r in restored] == [s.to_dict() for s in engine.snapshot()]
    assert [r.timestamp for r in restored] == [s.timestamp for s in subs]


def test_structured_export_ignores_filters(gateway, engine):
    _fill(gateway, make_submission("ISTJ"), make_submission("ENFP"))
    engine.filter("", "ISTJ")
    assert len(load_structured(engine.export_structured().data)) == 2


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        '{"submission_id": "x"}',
        '[{"submission_id": "x", "timestamp": "2026-01-01T00:00:00+00:00", "category_code": "ABCD",'
        ' "nickname": "n", "survey": {}}]',
        '[{"submission_id": "x", "timestamp": "2026-01-01T00:00:00+00:00", "category_code": "ISTJ",'
        ' "nickname": "n", "survey": {"fee": {"kind": "rating", "value": 3}}}]',
        '[{"submission_id": "x", "timestamp": "yesterday", "category_code": "ISTJ",'
        ' "nickname": "n", "survey": {}}]',
    ],
)
def test_invalid_structured_payloads(payload):
    with pytest.raises(ImportFailed):
        load_structured(payload)


def test_reset_all_clears_store_and_view(gateway, engine):
    _fill(gateway, make_submission(), make_submission())
    assert engine.reset_all() == 2
    assert engine.snapshot() == ()
    assert gateway.list_all(OWNER) == []


class FailingDeleteGateway(InMemoryGateway):
    def _delete_all(self, owner_id):
        raise OSError("backend down")


def test_failed_reset_keeps_in_memory_set():
    gw = FailingDeleteGateway()
    eng = AggregationEngine(gw, OWNER)
    gw.create(make_submission(), OWNER)
    eng.attach()
    with pytest.raises(PersistenceFailed):
        eng.reset_all()
    assert len(eng.snapshot()) == 1
    assert len(gw.list_all(OWNER)) == 1


def test_snapshot_is_stable_while_new_submissions_arrive(gateway, engine):
    _fill(gateway, make_submission())
    snap = engine.snapshot()
    _fill(gateway, make_submission())
    assert len(snap) == 1
    assert len(engine.snapshot()) == 2


def test_detach_stops_live_updates(gateway, engine):
    engine.detach()
    _fill(gateway, make_submission())
    assert engine.snapshot() == ()
    assert engine.load() == 1


def test_summary(gateway, engine):
    assert engine.summary() == {"total": 0, "latest": None, "categories": []}
    _fill(gateway, make_submission("ISTJ", minutes=0), make_submission("ENFP", minutes=10))
    summary = engine.summary()
    assert summary["total"] == 2
    assert summary["latest"] == "2026-01-01T09:10:00+00:00"
    assert summary["categories"] == ["ENFP", "ISTJ"]


def test_write_export(tmp_path, engine):
    payload = engine.export_structured()
    path = write_export(payload, tmp_path / "exports")
    assert path.read_bytes() == payload.data
    assert path.name == payload.filename


def test_keyword_matches_quoted_text_as_typed(gateway, engine):
    _fill(
        gateway,
        make_submission("ISTJ", new_service='a "dog park" please'),
        make_submission("ENFP", new_service="C:\\pets\\daycare"),
    )
    assert [s.category_code for s in engine.filter('"dog park"')] == ["ISTJ"]
    assert [s.category_code for s in engine.filter("\\pets")] == ["ENFP"]


def test_keyword_ignores_field_names_and_answer_kinds(gateway, engine):
    _fill(gateway, make_submission("ISTJ", new_service="daycare"))
    for keyword in ("open_text", "kind", "values", "new_service", "\\", "{"):
        assert engine.filter(keyword) == []


def test_keyword_keeps_surrounding_spaces(gateway, engine):
    _fill(
        gateway,
        make_submission("ISTJ", new_service="cat sitting"),
        make_submission("ENFP", new_service="catering"),
    )
    assert [s.category_code for s in engine.filter("cat ")] == ["ISTJ"]
    assert len(engine.filter("   ")) == 2


def test_other_repeating_a_selected_expert_counts_once():
    tables = aggregate_submissions([make_submission(experts=("Trainer",), other="trainer ")])
    assert tables.expert_counts == {"Trainer": 1}


def test_naive_and_aware_timestamps_sort_together():
    aware = make_submission("ISTJ", minutes=5, submission_id="aware")
    naive = make_submission("ENFP", minutes=0, submission_id="naive")
    naive = Submission(
        submission_id=naive.submission_id,
        timestamp=naive.timestamp.replace(tzinfo=None),
        category_code=naive.category_code,
        nickname=naive.nickname,
        survey=naive.survey,
    )
    assert naive.timestamp.tzinfo is not None
    assert [s.submission_id for s in sort_submissions([aware, naive], "oldest")] == ["naive", "aware"]
