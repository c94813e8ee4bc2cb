from __future__ import annotations

from types import SimpleNamespace

import pytest

from cargodock.services.imports.checks import (
    check_existing_keys,
    check_file_duplicates,
    check_group_child_duplicates,
    check_group_consistency,
    group_rows,
)
from cargodock.services.imports.errors import DuplicateKeyError, GroupConsistencyError
from cargodock.services.imports.types import ValidatedRow


def _row(row_number: int, **values) -> ValidatedRow:
    return ValidatedRow(row_number=row_number, data=SimpleNamespace(**values))


def test_group_rows_keeps_first_seen_order():
    rows = [_row(2, ref="B"), _row(3, ref="A"), _row(4, ref="B")]
    groups = group_rows(rows, lambda data: data.ref)
    assert list(groups) == ["B", "A"]
    assert [r.row_number for r in groups["B"]] == [2, 4]


def test_group_consistency_names_both_rows_and_values():
    groups = group_rows(
        [
            _row(2, ref="APT-1", method="trucking", po="P1"),
            _row(3, ref="APT-1", method="trucking", po="P2"),
            _row(4, ref="APT-2", method="direct", po=None),
            _row(5, ref="APT-2", method="direct", po=None),
        ],
        lambda data: data.ref,
    )
    with pytest.raises(GroupConsistencyError) as exc:
        check_group_consistency(groups, ("method", "po"), group_label="Appointment", labels={"po": "PO"})

    issues = exc.value.issues
    assert len(issues) == 1
    assert issues[0].row == 3
    assert issues[0].field == "PO"
    assert issues[0].message == "Appointment 'APT-1': 'PO' differs between row 2 ('P1') and row 3 ('P2')."


def test_group_consistency_treats_blank_and_value_as_different():
    groups = group_rows([_row(2, ref="A", po=None), _row(3, ref="A", po="P")], lambda data: data.ref)
    with pytest.raises(GroupConsistencyError) as exc:
        check_group_consistency(groups, ("po",), group_label="Order", labels={})
    assert "('') and row 3 ('P')" in exc.value.issues[0].message


def test_child_duplicates_are_scoped_to_their_group():
    groups = group_rows(
        [
            _row(2, ref="A", child="X"),
            _row(3, ref="B", child="X"),
            _row(4, ref="A", child="X"),
        ],
        lambda data: data.ref,
    )
    with pytest.raises(DuplicateKeyError) as exc:
        check_group_child_duplicates(
            groups, lambda data: data.child, group_label="Order", field_label="Detail Location"
        )
    assert [(i.row, i.message) for i in exc.value.issues] == [(4, "Order 'A': X repeats row 2 at row 4.")]


def test_file_duplicates_list_every_row_once_per_key():
    rows = [_row(2, code="A"), _row(3, code="B"), _row(4, code="A"), _row(6, code="A")]
    with pytest.raises(DuplicateKeyError) as exc:
        check_file_duplicates(rows, lambda data: data.code, field_label="Location Code")
    issues = exc.value.issues
    assert len(issues) == 1
    assert issues[0].row == 4
    assert issues[0].message == "Location Code 'A' appears more than once in the file (rows 2, 4, 6)."


def test_existing_keys_report_first_row_per_key():
    rows = [_row(2, code="A"), _row(3, code="B"), _row(4, code="A")]
    with pytest.raises(DuplicateKeyError) as exc:
        check_existing_keys(rows, lambda data: data.code, {"A"}, field_label="Customer Code")
    assert [(i.row, i.message) for i in exc.value.issues] == [(2, "Customer Code 'A' already exists.")]

    check_existing_keys(rows, lambda data: data.code, {"Z"}, field_label="Customer Code")
