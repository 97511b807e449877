"""Static ordered list of factory departments."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .domain import Department
from .errors import ErrorCode, UnknownDepartmentError, WorkflowValidationError

# (id, display name, board color)
DEFAULT_DEPARTMENTS: Tuple[Tuple[str, str, str], ...] = (
    ("CAD", "CAD Design", "#3B82F6"),
    ("PRINT", "3D Printing", "#8B5CF6"),
    ("CASTING", "Casting", "#EF4444"),
    ("FILLING", "Filling", "#F97316"),
    ("MEENA", "Meena Work", "#EC4899"),
    ("POLISH_1", "First Polish", "#10B981"),
    ("SETTING", "Stone Setting", "#06B6D4"),
    ("POLISH_2", "Final Polish", "#14B8A6"),
    ("ADDITIONAL", "Finishing Touch", "#6B7280"),
)


class DepartmentCatalog:
    """Read-only pipeline of departments with successor lookup."""

    def __init__(self, departments: Sequence[Department]) -> None:
        if not departments:
            raise WorkflowValidationError(
                "A department catalog needs at least one department",
                code=ErrorCode.INVALID_CATALOG,
            )
        ordered: List[Department] = []
        by_id: Dict[str, Department] = {}
        for position, department in enumerate(departments):
            if department.id in by_id:
                raise WorkflowValidationError(
                    f"Department {department.id!r} is listed twice",
                    code=ErrorCode.INVALID_CATALOG,
                )
            if department.position != position:
                department = Department(
                    id=department.id,
                    name=department.name,
                    display_name=department.display_name,
                    position=position,
                    terminal=department.terminal,
                    color=department.color,
                )
            ordered.append(department)
            by_id[department.id] = department
        self._departments: Tuple[Department, ...] = tuple(ordered)
        self._by_id = by_id

    @classmethod
    def default(cls) -> "DepartmentCatalog":
        return cls(
            [
                Department(
                    id=dept_id,
                    name=dept_id,
                    display_name=display_name,
                    position=position,
                    color=color,
                )
                for position, (dept_id, display_name, color) in enumerate(
                    DEFAULT_DEPARTMENTS
                )
            ]
        )

    @classmethod
    def from_ids(cls, ids: Iterable[str]) -> "DepartmentCatalog":
        """Build a catalog from bare ids, reusing default display names where known."""

        known = {dept_id: (name, color) for dept_id, name, color in DEFAULT_DEPARTMENTS}
        departments = []
        for position, raw in enumerate(ids):
            dept_id = raw.strip().upper()
            display_name, color = known.get(
                dept_id, (dept_id.replace("_", " ").title(), "")
            )
            departments.append(
                Department(
                    id=dept_id,
                    name=dept_id,
                    display_name=display_name,
                    position=position,
                    color=color,
                )
            )
        return cls(departments)

    def __iter__(self) -> Iterator[Department]:
        return iter(self._departments)

    def __len__(self) -> int:
        return len(self._departments)

    def __contains__(self, department_id: object) -> bool:
        return department_id in self._by_id

    def exists(self, department_id: str) -> bool:
        return department_id in self._by_id

    def get(self, department_id: str) -> Department:
        try:
            return self._by_id[department_id]
        except KeyError as exc:
            raise UnknownDepartmentError(department_id) from exc

    def first(self) -> Department:
        return self._departments[0]

    def next(self, department: Department) -> Optional[Department]:
        """Successor in the pipeline, or None when ``department`` ends it."""

        current = self.get(department.id)
        if current.terminal or current.position + 1 >= len(self._departments):
            return None
        return self._departments[current.position + 1]

    def previous(self, department: Department) -> Optional[Department]:
        current = self.get(department.id)
        if current.position == 0:
            return None
        return self._departments[current.position - 1]

    @property
    def ids(self) -> List[str]:
        return [department.id for department in self._departments]


__all__ = ["DepartmentCatalog", "DEFAULT_DEPARTMENTS"]
