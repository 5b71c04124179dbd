from docguard.diff.keys import diff_keys


def test_absent_sides_report_every_key():
    assert diff_keys(None, {"a": 1, "b": 2}) == {"a", "b"}
    assert diff_keys({"a": 1}, None) == {"a"}
    assert diff_keys(None, None) == frozenset()


def test_equal_values_are_not_reported():
    doc = {"name": "A", "profile": {"height": 175, "tags": ["x", "y"]}}
    assert diff_keys(doc, {"name": "A", "profile": {"height": 175, "tags": ["x", "y"]}}) == frozenset()


def test_added_removed_and_changed_keys():
    existing = {"keep": 1, "gone": 2, "changed": "a"}
    proposed = {"keep": 1, "changed": "b", "new": True}
    assert diff_keys(existing, proposed) == {"gone", "changed", "new"}


def test_nested_change_reports_top_level_key():
    existing = {"profile": {"height": 175, "weight": 70}}
    proposed = {"profile": {"height": 175, "weight": 71}}
    assert diff_keys(existing, proposed) == {"profile"}

    assert diff_keys({"reps": [1, 2, 3]}, {"reps": [1, 2]}) == {"reps"}


def test_bool_is_not_a_number():
    assert diff_keys({"tosAccepted": True}, {"tosAccepted": 1}) == {"tosAccepted"}
    assert diff_keys({"flag": False}, {"flag": 0}) == {"flag"}


def test_int_and_float_compare_numerically():
    assert diff_keys({"weight": 70}, {"weight": 70.0}) == frozenset()


def test_none_value_differs_from_missing_key():
    assert diff_keys({"a": None}, {}) == {"a"}


def test_inputs_are_not_mutated():
    existing = {"a": {"b": [1]}}
    proposed = {"a": {"b": [1, 2]}}
    diff_keys(existing, proposed)
    assert existing == {"a": {"b": [1]}}
    assert proposed == {"a": {"b": [1, 2]}}
