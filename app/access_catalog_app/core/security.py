from __future__ import annotations

import re

from access_catalog_app.core.errors import InvalidRequest

ACTION_READ = "READ"
ACTION_INSERT = "INSERT"
ACTION_UPDATE = "UPDATE"
ACTION_DELETE = "DELETE"
ACTION_CHOICES = (
    ACTION_READ,
    ACTION_INSERT,
    ACTION_UPDATE,
    ACTION_DELETE,
)

# SQL privilege names accepted in place of the action they map to.
ACTION_ALIASES = {
    "SELECT": ACTION_READ,
}

EFFECT_ALLOW = "ALLOW"
EFFECT_DENY = "DENY"
EFFECT_CHOICES = (EFFECT_ALLOW, EFFECT_DENY)

EFFECT_ALIASES = {
    "GRANT": EFFECT_ALLOW,
}

PRINCIPAL_KIND_IDENTITY = "identity"
PRINCIPAL_KIND_ROLE = "role"

_PRINCIPAL_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_@#$.\-]*$")


def normalize_name_list(raw_values, field_name: str) -> list[str]:
    """Accept a list/tuple of names or one comma-separated string."""
    if raw_values is None:
        return []
    if isinstance(raw_values, str):
        return [token.strip() for token in raw_values.split(",") if token.strip()]
    if not isinstance(raw_values, (list, tuple, set, frozenset)):
        raise InvalidRequest(f"'{field_name}' must be a list of names or a comma-separated string.")
    return [str(value or "").strip() for value in raw_values]


def normalize_action(raw_action: str) -> str:
    value = str(raw_action or "").strip().upper()
    value = ACTION_ALIASES.get(value, value)
    if value not in ACTION_CHOICES:
        raise InvalidRequest(
            f"Unsupported action '{raw_action}'. Expected one of: {', '.join(ACTION_CHOICES)}."
        )
    return value


def normalize_actions(raw_actions) -> tuple[str, ...]:
    values = [normalize_action(item) for item in normalize_name_list(raw_actions, "actions")]
    if not values:
        raise InvalidRequest("At least one action is required.")
    return tuple(dict.fromkeys(values))


def normalize_effect(raw_effect: str) -> str:
    value = str(raw_effect or "").strip().upper()
    value = EFFECT_ALIASES.get(value, value)
    if value not in EFFECT_CHOICES:
        raise InvalidRequest(
            f"Unsupported effect '{raw_effect}'. Expected one of: {', '.join(EFFECT_CHOICES)}."
        )
    return value


def normalize_principal_name(raw_name: str) -> str:
    value = str(raw_name or "").strip()
    if not value:
        raise InvalidRequest("Principal name is required.")
    if not _PRINCIPAL_NAME_RE.match(value):
        raise InvalidRequest(f"Invalid principal name '{raw_name}'.")
    return value


def principal_key(name: str) -> str:
    return str(name or "").strip().casefold()
