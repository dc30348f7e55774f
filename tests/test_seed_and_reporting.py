from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from access_catalog_app.backend.reporting import (
    FACT_COLUMNS,
    MEMBERSHIP_COLUMNS,
    PRINCIPAL_COLUMNS,
    facts_frame,
    memberships_frame,
    permission_matrix,
    principals_frame,
)
from access_catalog_app.backend.catalog import AccessCatalog
from access_catalog_app.backend.seed import (
    catalog_from_payload,
    load_seed_file,
    payload_from_catalog,
)
from access_catalog_app.core.errors import InvalidRequest

SEED_PATH = Path(__file__).resolve().parents[1] / "setup" / "seed" / "ga1_employee_data.json"
EMPLOYEE_COLUMNS = ["EmployeeID", "FirstName", "LastName", "Salary", "Department"]


@pytest.fixture(scope="module")
def seeded() -> AccessCatalog:
    return load_seed_file(SEED_PATH)


@pytest.mark.parametrize(
    ("identity", "action", "securable", "expected"),
    [
        ("HRManagerUser", "SELECT", "GA1.EmployeeData.Salary", "ALLOW"),
        ("HRManagerUser", "DELETE", "GA1.EmployeeData", "ALLOW"),
        ("SalesRepUser", "SELECT", "GA1.EmployeeData.Salary", "DENY"),
        ("SalesRepUser", "SELECT", "GA1.EmployeeData.FirstName", "ALLOW"),
        ("SalesRepUser", "INSERT", "GA1.EmployeeData", "DENY"),
        ("ITSupportUser", "UPDATE", "GA1.EmployeeData.Department", "ALLOW"),
        ("ITSupportUser", "UPDATE", "GA1.EmployeeData.Salary", "DENY"),
        ("ITSupportUser", "DELETE", "GA1.EmployeeData", "DENY"),
    ],
)
def test_bundled_seed_scenarios(seeded: AccessCatalog, identity: str, action: str, securable: str, expected: str) -> None:
    assert seeded.evaluate(identity, action, securable).effect == expected


def test_bundled_seed_logins(seeded: AccessCatalog) -> None:
    assert seeded.resolve_login("salesrep") == "SalesRepUser"
    assert seeded.resolve_effective_roles("HRManagerUser") == frozenset({"HRRole"})


def test_payload_export_rebuilds_same_decisions(seeded: AccessCatalog) -> None:
    rebuilt = catalog_from_payload(payload_from_catalog(seeded))

    assert len(rebuilt.facts()) == len(seeded.facts())
    for identity in ("HRManagerUser", "SalesRepUser", "ITSupportUser"):
        for column in EMPLOYEE_COLUMNS:
            path = f"GA1.EmployeeData.{column}"
            for action in ("READ", "UPDATE"):
                assert rebuilt.evaluate(identity, action, path).effect == seeded.evaluate(identity, action, path).effect


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"roles": "HRRole"},
        {"identities": [{"login": "NoName"}]},
        {"roles": ["HRRole"], "grants": [{"principal": "HRRole", "securable": "GA1"}]},
        {"roles": ["HRRole"], "grants": [{"principal": "HRRole", "actions": ["EXECUTE"], "securable": "GA1"}]},
        {"grants": [{"principal": "Nobody", "actions": ["READ"], "securable": "GA1"}]},
        {"roles": ["HRRole"], "grants": [{"principal": "HRRole", "actions": 5, "securable": "GA1"}]},
        {"roles": ["HRRole"], "grants": [{"principal": "HRRole", "actions": ["READ"], "securable": "GA1.EmployeeData", "columns": 5}]},
        {"roles": ["HRRole"], "identities": [{"name": "HRManagerUser", "roles": 5}]},
        {"roles": ["HRRole"], "identities": [{"name": "HRManagerUser", "roles": True}]},
    ],
)
def test_malformed_payload_is_rejected(payload) -> None:
    with pytest.raises(InvalidRequest):
        catalog_from_payload(payload)


def test_seed_file_must_be_json(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidRequest):
        load_seed_file(broken)


def test_seed_file_roundtrip_through_disk(seeded: AccessCatalog, tmp_path: Path) -> None:
    target = tmp_path / "export.json"
    target.write_text(json.dumps(payload_from_catalog(seeded)), encoding="utf-8")

    reloaded = load_seed_file(target)

    assert reloaded.snapshot().directory.roles() == seeded.snapshot().directory.roles()


def test_principals_frame(seeded: AccessCatalog) -> None:
    frame = principals_frame(seeded)

    assert list(frame.columns) == PRINCIPAL_COLUMNS
    assert frame["principal_kind"].tolist() == ["identity"] * 3 + ["role"] * 3
    logins = dict(zip(frame["principal_name"], frame["login"]))
    assert logins["ITSupportUser"] == "ITSupport"
    assert logins["ITRole"] == ""


def test_memberships_frame(seeded: AccessCatalog) -> None:
    frame = memberships_frame(seeded)

    assert list(frame.columns) == MEMBERSHIP_COLUMNS
    pairs = set(zip(frame["role_name"], frame["member_name"]))
    assert pairs == {
        ("HRRole", "HRManagerUser"),
        ("SalesRole", "SalesRepUser"),
        ("ITRole", "ITSupportUser"),
    }


def test_facts_frame_is_ordered_by_sequence(seeded: AccessCatalog) -> None:
    frame = facts_frame(seeded)

    assert list(frame.columns) == FACT_COLUMNS
    assert frame["sequence"].is_monotonic_increasing
    assert len(frame) == 12
    denies = frame[frame["effect"] == "DENY"]
    assert set(denies["securable"]) == {"GA1.EmployeeData.Salary"}
    assert set(denies["level"]) == {"column"}


def test_empty_catalog_frames_keep_columns() -> None:
    catalog = AccessCatalog()

    assert list(principals_frame(catalog).columns) == PRINCIPAL_COLUMNS
    assert list(memberships_frame(catalog).columns) == MEMBERSHIP_COLUMNS
    assert list(facts_frame(catalog).columns) == FACT_COLUMNS
    assert facts_frame(catalog).empty


def test_permission_matrix(seeded: AccessCatalog) -> None:
    targets = [f"GA1.EmployeeData.{column}" for column in EMPLOYEE_COLUMNS]

    matrix = permission_matrix(seeded, "SELECT", targets)

    assert matrix.index.name == "identity"
    assert matrix.columns.name == "READ"
    assert list(matrix.index) == ["HRManagerUser", "ITSupportUser", "SalesRepUser"]
    assert matrix.loc["SalesRepUser", "GA1.EmployeeData.Salary"] == "DENY"
    assert matrix.loc["SalesRepUser", "GA1.EmployeeData.FirstName"] == "ALLOW"
    assert (matrix.loc["HRManagerUser"] == "ALLOW").all()


def test_permission_matrix_for_selected_identities(seeded: AccessCatalog) -> None:
    matrix = permission_matrix(seeded, "UPDATE", ["GA1.EmployeeData(Salary)", "GA1.EmployeeData(Department)"], ["ITSupportUser"])

    assert matrix.to_dict("index") == {
        "ITSupportUser": {"GA1.EmployeeData.Salary": "DENY", "GA1.EmployeeData.Department": "ALLOW"}
    }
