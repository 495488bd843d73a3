# tests/test_assignments.py

from taskboard.services.assignments import diff_assignees


def test_added_and_removed():
    added, removed = diff_assignees(["u1", "u2"], ["u2", "u3"])
    assert added == ["u3"]
    assert removed == ["u1"]


def test_same_list_is_a_no_op():
    assert diff_assignees(["u1", "u2"], ["u1", "u2"]) == ([], [])


def test_reordering_is_not_a_change():
    assert diff_assignees(["u1", "u2"], ["u2", "u1"]) == ([], [])


def test_duplicates_are_collapsed():
    assert diff_assignees(["u1"], ["u1", "u2", "u2"]) == (["u2"], [])


def test_empty_and_missing_lists():
    assert diff_assignees(None, ["u1"]) == (["u1"], [])
    assert diff_assignees(["u1"], []) == ([], ["u1"])
