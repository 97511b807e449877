import pytest

from factory_workflow.catalog import DEFAULT_DEPARTMENTS, DepartmentCatalog
from factory_workflow.domain import Department
from factory_workflow.errors import ErrorCode, UnknownDepartmentError, WorkflowValidationError


def test_default_catalog_follows_factory_order():
    catalog = DepartmentCatalog.default()

    assert catalog.ids == [dept_id for dept_id, _, _ in DEFAULT_DEPARTMENTS]
    assert catalog.first().id == "CAD"
    assert catalog.get("MEENA").display_name == "Meena Work"
    assert [department.position for department in catalog] == list(range(len(catalog)))


def test_next_and_previous():
    catalog = DepartmentCatalog.from_ids(["cad", "print", "casting"])

    assert catalog.next(catalog.get("CAD")).id == "PRINT"
    assert catalog.next(catalog.get("CASTING")) is None
    assert catalog.previous(catalog.get("CAD")) is None
    assert catalog.previous(catalog.get("CASTING")).id == "PRINT"


def test_terminal_department_ends_pipeline():
    catalog = DepartmentCatalog(
        [
            Department(id="CAD", name="CAD", display_name="CAD Design", position=0),
            Department(id="QC", name="QC", display_name="Quality", position=1, terminal=True),
            Department(id="PACK", name="PACK", display_name="Packing", position=2),
        ]
    )

    assert catalog.next(catalog.get("QC")) is None


def test_unknown_department_raises():
    catalog = DepartmentCatalog.default()

    assert not catalog.exists("SMELTING")
    with pytest.raises(UnknownDepartmentError) as excinfo:
        catalog.get("SMELTING")
    assert excinfo.value.code is ErrorCode.DEPARTMENT_NOT_FOUND


def test_invalid_catalogs_are_rejected():
    with pytest.raises(WorkflowValidationError) as excinfo:
        DepartmentCatalog([])
    assert excinfo.value.code is ErrorCode.INVALID_CATALOG

    with pytest.raises(WorkflowValidationError):
        DepartmentCatalog.from_ids(["CAD", "cad"])


def test_positions_are_renumbered():
    catalog = DepartmentCatalog(
        [
            Department(id="A", name="A", display_name="A", position=7),
            Department(id="B", name="B", display_name="B", position=3),
        ]
    )

    assert catalog.get("A").position == 0
    assert catalog.get("B").position == 1
    assert DepartmentCatalog.from_ids(["print_2"]).get("PRINT_2").display_name == "Print 2"
