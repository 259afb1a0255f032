import pytest

import datamerge.merge as mm
from datamerge import DataMergeUserError, Dataset, MergeRequest, MissingJoinKeyError, merge_results, merge_rows


def _request(left, right, key="id", **kw):
    return MergeRequest(Dataset(left), Dataset(right), left_key=key, right_key=key, **kw)


def test_full_merge_scenario():
    left = [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
    right = [{"id": 2, "val": "X"}, {"id": 3, "val": "Y"}]
    res = merge_results(_request(left, right, merge_type="full"))

    assert res.ok
    assert res.columns == ["left.id", "left.name", "right.id", "right.val"]
    assert res.rows == [
        [1, "a", None, None],
        [2, "b", 2, "X"],
        [None, None, 3, "Y"],
    ]
    assert res.stats.to_dict() == {
        "leftRows": 2,
        "rightRows": 2,
        "matchedPairs": 1,
        "unmatchedLeft": 1,
        "unmatchedRight": 1,
    }
    assert (res.row_count, res.total_row_count, res.truncated) == (3, 3, False)


@pytest.mark.parametrize("how", ["inner", "left", "right", "full"])
def test_row_count_matches_retained_stats(how):
    left = [{"id": i % 3, "l": i} for i in range(7)] + [{"id": None, "l": 99}]
    right = [{"id": i % 4, "r": i} for i in range(6)] + [{"r": -1}]
    res = merge_results(_request(left, right, merge_type=how, max_rows=5000))
    s = res.stats
    if how == "inner":
        assert res.total_row_count == s.matched_pairs
    if how == "left":
        assert res.total_row_count == s.matched_pairs + s.unmatched_left
    if how == "right":
        assert res.total_row_count == s.matched_pairs + s.unmatched_right
    if how == "full":
        assert res.total_row_count == s.matched_pairs + s.unmatched_left + s.unmatched_right
    assert s.matched_pairs > 0 and s.unmatched_left > 0


def test_cross_type_key_equivalence():
    res = merge_results(_request([{"id": 42}], [{"id": "42"}]))
    assert res.total_row_count == 1
    res = merge_results(_request([{"id": "42.0"}], [{"id": 42}]))
    assert res.total_row_count == 1
    assert res.rows == [["42.0", 42]]


def test_null_keys_never_match():
    left = [{"id": None, "a": 1}, {"a": 2}, {"id": 1, "a": 3}]
    right = [{"id": None, "b": 1}, {"id": 1, "b": 2}]

    res = merge_results(_request(left, right, merge_type="left"))
    assert res.stats.matched_pairs == 1
    assert res.stats.unmatched_left == 2
    assert res.total_row_count == 3

    res = merge_results(_request(left, right, merge_type="right"))
    assert res.stats.matched_pairs == 1
    assert res.stats.unmatched_right == 1
    assert res.total_row_count == 2
    assert res.rows[-1] == [None, None, None, 1]


def test_truncation_keeps_full_stats():
    left = [{"id": 1, "n": i} for i in range(10)]
    right = [{"id": 1}]
    res = merge_results(_request(left, right, max_rows=3))
    assert res.truncated is True
    assert res.row_count == len(res.rows) == 3
    assert res.total_row_count == 10
    assert res.stats.matched_pairs == 10
    assert [r[1] for r in res.rows] == [0, 1, 2]


def test_fan_out_scenario():
    left = [{"k": 1, "a": "x"}, {"k": 1, "a": "y"}]
    right = [{"k": 1, "b": "p"}, {"k": 1, "b": "q"}]
    res = merge_results(_request(left, right, key="k"))
    assert res.total_row_count == 4
    assert res.stats.matched_pairs == 4


def test_heterogeneous_rows_fill_missing_columns():
    left = [{"id": 1}, {"id": 2, "extra": True}]
    right = [{"id": 1, "x": "a"}, {"x": "b", "id": 2, "y": [1]}]
    res = merge_results(_request(left, right, left_prefix="u", right_prefix="b"))
    assert res.columns == ["u.id", "u.extra", "b.id", "b.x", "b.y"]
    assert res.rows == [[1, None, 1, "a", None], [2, True, 2, "b", "[1]"]]


def test_missing_join_key_is_reported_not_raised():
    res = merge_results(MergeRequest(Dataset([{"id": 1}]), Dataset([{"id": 1}, {"id": 2}]),
                                     left_key="uid", right_key="id"))
    assert not res.ok
    assert res.error == 'Missing join key(s): leftKey "uid"'
    assert res.error_code == "E_MERGE_MISSING_KEY"
    assert (res.columns, res.rows, res.row_count, res.total_row_count, res.truncated) == ([], [], 0, 0, False)
    assert res.stats.to_dict() == {
        "leftRows": 1, "rightRows": 2, "matchedPairs": 0, "unmatchedLeft": 0, "unmatchedRight": 0,
    }


def test_missing_keys_on_both_sides_and_empty_datasets():
    res = merge_results(MergeRequest(Dataset([]), Dataset([{"a": 1}]), left_key="id", right_key="id"))
    assert res.error == 'Missing join key(s): leftKey "id", rightKey "id"'


def test_missing_join_key_error_names_each_side():
    request = MergeRequest(Dataset([{"id": 1}]), Dataset([{"uid": 1}]), left_key="uid", right_key="uid")
    with pytest.raises(MissingJoinKeyError) as ei:
        mm._check_join_keys(request)
    err = ei.value
    assert isinstance(err, DataMergeUserError)
    assert err.code == "E_MERGE_MISSING_KEY"
    assert err.missing == (("leftKey", "uid"),)
    assert err.sides == ("left",)
    assert str(err).startswith('[E_MERGE_MISSING_KEY] Missing join key(s): leftKey "uid"\nHint: ')


def test_key_present_only_as_null_passes_the_gate():
    """presence means the column appears on a row, even with a null value."""
    res = merge_results(_request([{"id": None}], [{"id": None}], merge_type="full"))
    assert res.ok
    assert res.stats.unmatched_left == 1 and res.stats.unmatched_right == 1


def test_unexpected_failure_becomes_error_result(monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(mm, "execute", _boom)
    res = merge_results(_request([{"id": 1}], [{"id": 1}]))
    assert res.error == "boom"
    assert res.error_code == "E_MERGE_FAILED"
    assert res.rows == []


def test_default_title_uses_labels_then_connection_ids():
    req = MergeRequest(
        Dataset([{"id": 1}], label="users_db"),
        Dataset([{"uid": 1}], connection_id="conn-2"),
        left_key="id",
        right_key="uid",
        merge_type="left",
    )
    res = merge_results(req)
    assert res.title == "Merged users_db (id) LEFT conn-2 (uid)"
    assert res.right_connection_id == "conn-2"
    assert res.left_connection_id is None

    titled = merge_results(MergeRequest(req.left, req.right, "id", "uid", title="Users x billing"))
    assert titled.title == "Users x billing"


def test_merge_rows_returns_everything_untruncated():
    out = merge_rows([{"k": 1}] * 3, [{"k": 1}] * 3, "k", "k")
    assert len(out.rows) == 9
    assert out.columns == ["left.k", "right.k"]
    assert out.stats.matched_pairs == 9


def test_repeated_calls_are_independent():
    req = _request([{"id": 1}], [{"id": 1}, {"id": 2}], merge_type="full")
    first = merge_results(req)
    second = merge_results(req)
    assert first == second


def test_oversized_numeric_text_does_not_fail_the_merge():
    left = [{"id": "1" * 5000}, {"id": 1}]
    res = merge_results(_request(left, [{"id": 1}], merge_type="left"))
    assert res.ok
    assert res.stats.matched_pairs == 1
    assert res.stats.unmatched_left == 1
