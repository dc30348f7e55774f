from __future__ import annotations

from typing import Iterable

import pandas as pd

from access_catalog_app.backend.catalog import AccessCatalog
from access_catalog_app.core.securables import parse_securable
from access_catalog_app.core.security import PRINCIPAL_KIND_IDENTITY, PRINCIPAL_KIND_ROLE, normalize_action

PRINCIPAL_COLUMNS = ["principal_name", "principal_kind", "login"]
MEMBERSHIP_COLUMNS = ["role_name", "member_name"]
FACT_COLUMNS = ["sequence", "principal", "action", "securable", "level", "effect"]


def principals_frame(catalog: AccessCatalog) -> pd.DataFrame:
    directory = catalog.snapshot().directory
    rows = [
        {"principal_name": record.name, "principal_kind": PRINCIPAL_KIND_IDENTITY, "login": record.login}
        for record in directory.identities()
    ]
    rows.extend(
        {"principal_name": role, "principal_kind": PRINCIPAL_KIND_ROLE, "login": ""}
        for role in directory.roles()
    )
    if not rows:
        return pd.DataFrame(columns=PRINCIPAL_COLUMNS)
    return pd.DataFrame(rows, columns=PRINCIPAL_COLUMNS).sort_values(
        ["principal_kind", "principal_name"], ignore_index=True
    )


def memberships_frame(catalog: AccessCatalog) -> pd.DataFrame:
    directory = catalog.snapshot().directory
    rows = [
        {"role_name": role, "member_name": member}
        for role in directory.roles()
        for member in directory.role_members(role)
    ]
    if not rows:
        return pd.DataFrame(columns=MEMBERSHIP_COLUMNS)
    return pd.DataFrame(rows, columns=MEMBERSHIP_COLUMNS)


def facts_frame(catalog: AccessCatalog) -> pd.DataFrame:
    rows = [fact.as_dict() for fact in catalog.facts()]
    if not rows:
        return pd.DataFrame(columns=FACT_COLUMNS)
    out = pd.DataFrame(rows)[FACT_COLUMNS]
    out["sequence"] = pd.to_numeric(out["sequence"], errors="coerce").fillna(0).astype(int)
    return out.sort_values("sequence", ignore_index=True)


def permission_matrix(
    catalog: AccessCatalog,
    action: str,
    securables: Iterable[str],
    identities: Iterable[str] | None = None,
) -> pd.DataFrame:
    """
    Effective decisions for every (identity, securable) pair.

    Rows are identities, columns are securable paths, cells are ALLOW/DENY.
    All cells come from one snapshot of the catalog.
    """
    action_value = normalize_action(action)
    targets = [parse_securable(item) for item in securables]
    snapshot = catalog.snapshot()
    names = list(identities) if identities is not None else [record.name for record in snapshot.directory.identities()]
    evaluator = snapshot.evaluator()
    data = {
        target.path: [evaluator.evaluate(name, action_value, target).effect for name in names]
        for target in targets
    }
    out = pd.DataFrame(data, index=pd.Index(names, name="identity"), columns=[target.path for target in targets])
    out.columns.name = action_value
    return out
