from __future__ import annotations

import argparse
import sys
from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[2] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from access_catalog_app.backend.reporting import facts_frame, memberships_frame, permission_matrix  # noqa: E402
from access_catalog_app.backend.seed import load_seed_file  # noqa: E402
from access_catalog_app.core.errors import AccessDeniedError  # noqa: E402
from access_catalog_app.logging import setup_app_logging  # noqa: E402

EMPLOYEE_TABLE = "GA1.EmployeeData"
EMPLOYEE_COLUMNS = ("EmployeeID", "FirstName", "LastName", "Salary", "Department")

# (identity, action, columns touched, expected outcome)
SCENARIOS = (
    ("HRManagerUser", "SELECT", EMPLOYEE_COLUMNS, True),
    ("HRManagerUser", "INSERT", EMPLOYEE_COLUMNS, True),
    ("SalesRepUser", "SELECT", EMPLOYEE_COLUMNS, False),
    ("SalesRepUser", "SELECT", ("EmployeeID", "FirstName", "LastName", "Department"), True),
    ("SalesRepUser", "INSERT", EMPLOYEE_COLUMNS, False),
    ("ITSupportUser", "SELECT", EMPLOYEE_COLUMNS, True),
    ("ITSupportUser", "UPDATE", ("Department",), True),
    ("ITSupportUser", "UPDATE", ("Salary",), False),
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay the GA1 employee-data access scenarios against a seeded access catalog."
    )
    parser.add_argument(
        "--seed-path",
        default=str(Path(__file__).resolve().parent / "ga1_employee_data.json"),
        help="JSON seed file with roles, identities and grants.",
    )
    parser.add_argument("--show-facts", action="store_true", help="Print the recorded policy facts first.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_app_logging()
    catalog = load_seed_file(args.seed_path)

    if args.show_facts:
        print(memberships_frame(catalog).to_string(index=False))
        print()
        print(facts_frame(catalog).to_string(index=False))
        print()

    mismatches = 0
    for identity, action, columns, expected in SCENARIOS:
        try:
            catalog.enforce_columns(identity, action, EMPLOYEE_TABLE, columns)
            allowed = True
            detail = "permitted"
        except AccessDeniedError as exc:
            allowed = False
            detail = str(exc)
        status = "ok" if allowed == expected else "UNEXPECTED"
        if allowed != expected:
            mismatches += 1
        print(f"[{status}] {identity} {action} ({', '.join(columns)}): {detail}")

    print()
    columns = [f"{EMPLOYEE_TABLE}.{column}" for column in EMPLOYEE_COLUMNS]
    for action in ("READ", "UPDATE"):
        print(permission_matrix(catalog, action, columns).to_string())
        print()
    return 1 if mismatches else 0


if __name__ == "__main__":
    raise SystemExit(main())
