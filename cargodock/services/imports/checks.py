"""
Consistency steps shared by the entity imports.

Each step inspects the whole batch, collects every issue it finds and raises
its own `ImportAbort` subclass when anything is wrong, so the caller sees all
offending rows of that step at once.
"""
from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from typing import Any

from cargodock.services.imports.errors import DuplicateKeyError, GroupConsistencyError
from cargodock.services.imports.types import ImportIssue, ValidatedRow


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def group_rows(
    rows: Iterable[ValidatedRow],
    key: Callable[[Any], Hashable],
) -> dict[Hashable, list[ValidatedRow]]:
    """Groups rows in first-seen order."""
    groups: dict[Hashable, list[ValidatedRow]] = {}
    for row in rows:
        groups.setdefault(key(row.data), []).append(row)
    return groups


def check_group_consistency(
    groups: Mapping[Hashable, Sequence[ValidatedRow]],
    fields: Sequence[str],
    *,
    group_label: str,
    labels: Mapping[str, str],
) -> None:
    issues: list[ImportIssue] = []
    for group_key, members in groups.items():
        first = members[0]
        divergence = None
        for member in members[1:]:
            for field in fields:
                expected = getattr(first.data, field)
                actual = getattr(member.data, field)
                if expected != actual:
                    divergence = (member, field, expected, actual)
                    break
            if divergence is not None:
                break
        if divergence is None:
            continue
        member, field, expected, actual = divergence
        label = labels.get(field, field)
        issues.append(
            ImportIssue(
                row=member.row_number,
                field=label,
                message=(
                    f"{group_label} '{group_key}': '{label}' differs between row "
                    f"{first.row_number} ('{_display(expected)}') and row "
                    f"{member.row_number} ('{_display(actual)}')."
                ),
            )
        )
    if issues:
        raise GroupConsistencyError(issues)


def check_group_child_duplicates(
    groups: Mapping[Hashable, Sequence[ValidatedRow]],
    child_key: Callable[[Any], Hashable],
    *,
    group_label: str,
    field_label: str,
    describe: Callable[[Hashable], str] = str,
) -> None:
    issues: list[ImportIssue] = []
    for group_key, members in groups.items():
        seen: dict[Hashable, int] = {}
        for member in members:
            key = child_key(member.data)
            if key in seen:
                issues.append(
                    ImportIssue(
                        row=member.row_number,
                        field=field_label,
                        message=(
                            f"{group_label} '{group_key}': {describe(key)} repeats row "
                            f"{seen[key]} at row {member.row_number}."
                        ),
                    )
                )
                continue
            seen[key] = member.row_number
    if issues:
        raise DuplicateKeyError(issues)


def check_file_duplicates(
    rows: Iterable[ValidatedRow],
    key: Callable[[Any], Hashable],
    *,
    field_label: str,
    context: str = "",
) -> None:
    rows_by_key: dict[Hashable, list[int]] = {}
    for row in rows:
        rows_by_key.setdefault(key(row.data), []).append(row.row_number)
    issues = []
    for value, row_numbers in rows_by_key.items():
        if len(row_numbers) < 2:
            continue
        joined = ", ".join(str(n) for n in row_numbers)
        issues.append(
            ImportIssue(
                row=row_numbers[1],
                field=field_label,
                message=f"{context}{field_label} '{value}' appears more than once in the file (rows {joined}).",
            )
        )
    if issues:
        raise DuplicateKeyError(issues)


def check_existing_keys(
    rows: Iterable[ValidatedRow],
    key: Callable[[Any], Hashable],
    existing: set,
    *,
    field_label: str,
) -> None:
    issues: list[ImportIssue] = []
    reported: set = set()
    for row in rows:
        value = key(row.data)
        if value not in existing or value in reported:
            continue
        reported.add(value)
        issues.append(
            ImportIssue(
                row=row.row_number,
                field=field_label,
                message=f"{field_label} '{value}' already exists.",
            )
        )
    if issues:
        raise DuplicateKeyError(issues)
