from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from access_catalog_app.backend.directory import PrincipalDirectory
from access_catalog_app.backend.evaluator import REASON_DEFAULT_DENY, AccessEvaluator
from access_catalog_app.backend.policy_store import PolicyStore
from access_catalog_app.core.errors import InvalidRequest, UnknownIdentity
from access_catalog_app.core.securables import LEVEL_COLUMN, LEVEL_OBJECT, LEVEL_SCHEMA
from access_catalog_app.core.security import EFFECT_ALLOW, EFFECT_DENY


@pytest.fixture()
def directory() -> PrincipalDirectory:
    directory = PrincipalDirectory()
    for role in ("HRRole", "SalesRole", "ITRole"):
        directory.create_role(role)
    directory.create_identity("HRManagerUser", roles=["HRRole"])
    directory.create_identity("SalesRepUser", roles=["SalesRole"])
    directory.create_identity("ITSupportUser", roles=["ITRole"])
    directory.create_identity("NewHireUser")
    return directory


@pytest.fixture()
def store() -> PolicyStore:
    return PolicyStore()


@pytest.fixture()
def evaluator(directory: PrincipalDirectory, store: PolicyStore) -> AccessEvaluator:
    return AccessEvaluator(directory, store)


def test_no_facts_means_deny(evaluator: AccessEvaluator) -> None:
    for action in ("READ", "INSERT", "UPDATE", "DELETE"):
        decision = evaluator.evaluate("NewHireUser", action, "GA1.EmployeeData.Salary")
        assert decision.effect == EFFECT_DENY
        assert decision.matched_fact is None
        assert decision.is_default is True
        assert decision.reason == REASON_DEFAULT_DENY


def test_facts_of_other_principals_do_not_apply(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("HRRole", "READ", "GA1", "ALLOW")
    assert evaluator.evaluate("NewHireUser", "READ", "GA1.EmployeeData").effect == EFFECT_DENY


def test_role_grants_apply_to_members(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    fact = store.grant("HRRole", "SELECT", "GA1", "ALLOW")

    decision = evaluator.evaluate("HRManagerUser", "READ", "GA1.EmployeeData")

    assert decision.effect == EFFECT_ALLOW
    assert decision.allowed is True
    assert decision.matched_fact == fact


def test_direct_identity_grant_applies(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("NewHireUser", "READ", "GA1.EmployeeData", "ALLOW")
    assert evaluator.evaluate("newhireuser", "READ", "GA1.EmployeeData.FirstName").allowed is True


def test_decision_reports_directory_spelling_of_identity(evaluator: AccessEvaluator) -> None:
    decision = evaluator.evaluate("newhireuser", "READ", "GA1.EmployeeData")
    assert decision.identity == "NewHireUser"
    assert decision.as_dict()["identity"] == "NewHireUser"


def test_column_deny_beats_object_allow_but_not_sibling(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    allow = store.grant("SalesRole", "READ", "GA1.EmployeeData", "ALLOW")
    deny = store.grant("SalesRole", "READ", "GA1.EmployeeData.Salary", "DENY")

    salary = evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData.Salary")
    first_name = evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData.FirstName")

    assert salary.effect == EFFECT_DENY
    assert salary.matched_fact == deny
    assert first_name.effect == EFFECT_ALLOW
    assert first_name.matched_fact == allow


def test_schema_grants_with_column_deny_for_another_role(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    for action in ("SELECT", "INSERT", "UPDATE", "DELETE"):
        store.grant("HRRole", action, "GA1", "ALLOW")
    store.grant("SalesRole", "SELECT", "GA1.EmployeeData", "ALLOW")
    store.grant("SalesRole", "SELECT", "GA1.EmployeeData.Salary", "DENY")

    assert evaluator.evaluate("HRManagerUser", "READ", "GA1.EmployeeData.Salary").effect == EFFECT_ALLOW
    assert evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData.Salary").effect == EFFECT_DENY


def test_deny_wins_even_when_less_specific(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    deny = store.grant("SalesRole", "READ", "GA1", "DENY")
    store.grant("SalesRole", "READ", "GA1.EmployeeData.Salary", "ALLOW")

    decision = evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData.Salary")

    assert decision.effect == EFFECT_DENY
    assert decision.matched_fact == deny


def test_deny_wins_at_identical_specificity(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("SalesRepUser", "READ", "GA1.EmployeeData", "ALLOW")
    store.grant("SalesRole", "READ", "GA1.EmployeeData", "DENY")
    assert evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData").effect == EFFECT_DENY


def test_most_specific_allow_is_reported(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("ITRole", "UPDATE", "GA1.EmployeeData", "ALLOW")
    column = store.grant("ITRole", "UPDATE", "GA1.EmployeeData.Department", "ALLOW")
    store.grant("ITRole", "UPDATE", "GA1", "ALLOW")

    decision = evaluator.evaluate("ITSupportUser", "UPDATE", "GA1.EmployeeData.Department")

    assert decision.matched_fact == column
    assert len(decision.applicable_facts) == 3


def test_conflict_audit_spans_levels(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    allow = store.grant("ITRole", "UPDATE", "GA1.EmployeeData", "ALLOW")
    deny = store.grant("ITRole", "UPDATE", "GA1.EmployeeData.Salary", "DENY")

    decision = evaluator.evaluate("ITSupportUser", "UPDATE", "GA1.EmployeeData.Salary")

    assert decision.audit is not None
    assert decision.audit.levels == (LEVEL_OBJECT, LEVEL_COLUMN)
    assert decision.audit.overridden == (allow,)
    assert decision.audit.contributing == (deny, allow)


def test_no_audit_for_single_level(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("HRRole", "READ", "GA1", "ALLOW")
    store.grant("HRManagerUser", "READ", "GA1", "ALLOW")
    decision = evaluator.evaluate("HRManagerUser", "READ", "GA1.EmployeeData")
    assert decision.audit is None
    assert {fact.level for fact in decision.applicable_facts} == {LEVEL_SCHEMA}


def test_membership_removal_takes_effect(
    evaluator: AccessEvaluator,
    directory: PrincipalDirectory,
    store: PolicyStore,
) -> None:
    store.grant("HRRole", "DELETE", "GA1", "ALLOW")
    assert evaluator.evaluate("HRManagerUser", "DELETE", "GA1.EmployeeData").allowed is True
    directory.remove_membership("HRManagerUser", "HRRole")
    assert evaluator.evaluate("HRManagerUser", "DELETE", "GA1.EmployeeData").allowed is False


def test_evaluate_is_repeatable(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("SalesRole", "READ", "GA1.EmployeeData", "ALLOW")
    store.grant("SalesRole", "READ", "GA1.EmployeeData.Salary", "DENY")
    first = evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData.Salary")
    second = evaluator.evaluate("SalesRepUser", "READ", "GA1.EmployeeData.Salary")
    assert first == second
    assert len(store.facts()) == 2


def test_unknown_identity_raises(evaluator: AccessEvaluator) -> None:
    with pytest.raises(UnknownIdentity):
        evaluator.evaluate("Ghost", "READ", "GA1")


@pytest.mark.parametrize(("action", "securable"), [("EXECUTE", "GA1"), ("READ", "GA1.A.B.C"), ("", "GA1")])
def test_malformed_requests_raise_invalid_request(evaluator: AccessEvaluator, action: str, securable: str) -> None:
    with pytest.raises(InvalidRequest):
        evaluator.evaluate("HRManagerUser", action, securable)


def test_authorize_columns_reports_each_column(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("ITRole", "UPDATE", "GA1.EmployeeData", "ALLOW")
    store.grant("ITRole", "UPDATE", "GA1.EmployeeData.Salary", "DENY")

    decisions = evaluator.authorize_columns("ITSupportUser", "UPDATE", "GA1.EmployeeData", ["Department", "Salary"])

    assert {column: decision.effect for column, decision in decisions.items()} == {
        "Department": EFFECT_ALLOW,
        "Salary": EFFECT_DENY,
    }


def test_decision_as_dict_is_json_ready(evaluator: AccessEvaluator, store: PolicyStore) -> None:
    store.grant("SalesRole", "READ", "GA1.EmployeeData", "ALLOW")
    payload = evaluator.evaluate("SalesRepUser", "SELECT", "GA1.EmployeeData(Salary)").as_dict()
    assert payload["effect"] == EFFECT_ALLOW
    assert payload["action"] == "READ"
    assert payload["securable"] == "GA1.EmployeeData.Salary"
    assert payload["matched_fact"]["level"] == LEVEL_OBJECT
    assert payload["audit"] is None
