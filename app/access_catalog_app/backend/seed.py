"""
Build a catalog from a plain mapping and export one back.

Payload shape::

    {
        "roles": ["HRRole", "SalesRole"],
        "identities": [
            {"name": "HRManagerUser", "login": "HRManager", "roles": ["HRRole"]}
        ],
        "grants": [
            {"principal": "HRRole", "actions": ["SELECT", "INSERT"], "securable": "GA1"},
            {"principal": "SalesRole", "actions": ["SELECT"], "securable": "GA1.EmployeeData",
             "columns": ["Salary"], "effect": "DENY"}
        ]
    }

Grants are recorded in list order, which fixes their recording sequence.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from access_catalog_app.backend.catalog import AccessCatalog
from access_catalog_app.core.errors import InvalidRequest
from access_catalog_app.core.security import EFFECT_ALLOW, normalize_name_list

LOGGER = logging.getLogger(__name__)


def _as_list(payload: Mapping[str, Any], key: str) -> list:
    value = payload.get(key) or []
    if not isinstance(value, list):
        raise InvalidRequest(f"Seed payload '{key}' must be a list.")
    return value


def _grant_actions(entry: Mapping[str, Any]) -> Any:
    if "actions" in entry:
        return entry["actions"]
    if "action" in entry:
        return [entry["action"]]
    raise InvalidRequest("Seed grant requires 'actions' or 'action'.")


def apply_payload(catalog: AccessCatalog, payload: Mapping[str, Any]) -> AccessCatalog:
    if not isinstance(payload, Mapping):
        raise InvalidRequest("Seed payload must be a JSON object.")

    for role in _as_list(payload, "roles"):
        catalog.create_role(str(role))

    for entry in _as_list(payload, "identities"):
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, Mapping) or not str(entry.get("name") or "").strip():
            raise InvalidRequest("Seed identity entries require a 'name'.")
        catalog.create_identity(
            str(entry["name"]),
            login=str(entry.get("login") or ""),
            roles=entry.get("roles") or (),
        )

    for entry in _as_list(payload, "grants"):
        if not isinstance(entry, Mapping):
            raise InvalidRequest("Seed grant entries must be objects.")
        catalog.grant_privileges(
            str(entry.get("principal") or ""),
            _grant_actions(entry),
            str(entry.get("securable") or ""),
            columns=normalize_name_list(entry.get("columns"), "columns") or None,
            effect=str(entry.get("effect") or EFFECT_ALLOW),
        )
    return catalog


def catalog_from_payload(payload: Mapping[str, Any]) -> AccessCatalog:
    """Build the whole state off to the side, then hand back a ready catalog."""
    catalog = apply_payload(AccessCatalog(), payload)
    snapshot = catalog.snapshot()
    LOGGER.info(
        "Built access catalog from payload. identities=%s roles=%s facts=%s",
        len(snapshot.directory.identity_map),
        len(snapshot.directory.role_map),
        len(snapshot.policies.fact_list),
    )
    return catalog


def load_seed_file(path: str | Path) -> AccessCatalog:
    seed_path = Path(path)
    try:
        payload = json.loads(seed_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidRequest(f"Seed file '{seed_path}' is not valid JSON: {exc}") from exc
    LOGGER.info("Loading access seed. path=%s", seed_path)
    return catalog_from_payload(payload)


def payload_from_catalog(catalog: AccessCatalog) -> dict[str, Any]:
    snapshot = catalog.snapshot()
    directory = snapshot.directory
    identities = []
    for record in directory.identities():
        entry: dict[str, Any] = {"name": record.name}
        if record.login:
            entry["login"] = record.login
        entry["roles"] = sorted(directory.role_map[key] for key in record.role_keys)
        identities.append(entry)
    grants = [
        {
            "principal": fact.principal,
            "actions": [fact.action],
            "securable": fact.securable.path,
            "effect": fact.effect,
        }
        for fact in sorted(snapshot.policies.facts(), key=lambda fact: fact.sequence)
    ]
    return {
        "roles": list(directory.roles()),
        "identities": identities,
        "grants": grants,
    }
