"""API rule and permission comparison.

``None`` (locked, superusers only) and ``""`` (public) are different
values and are never conflated.
"""

from __future__ import annotations

from pbmigrate.migrations.types import RULE_TYPES, PermissionChange, RuleUpdate

RuleMap = dict[str, "str | None"]


def _resolve(rules: RuleMap | None, permissions: RuleMap | None, rule_type: str) -> str | None:
    value = (rules or {}).get(rule_type)
    if value is None:
        value = (permissions or {}).get(rule_type)
    return value


def compare_rules(
    current_rules: RuleMap | None,
    previous_rules: RuleMap | None,
    current_permissions: RuleMap | None = None,
    previous_permissions: RuleMap | None = None,
) -> list[RuleUpdate]:
    """Compare effective rules, falling back to permissions for unset rules."""
    updates: list[RuleUpdate] = []

    for rule_type in RULE_TYPES:
        current_value = _resolve(current_rules, current_permissions, rule_type)
        previous_value = _resolve(previous_rules, previous_permissions, rule_type)

        if current_value != previous_value:
            updates.append(RuleUpdate(rule_type, previous_value, current_value))

    return updates


def compare_permissions(
    current_permissions: RuleMap | None,
    previous_permissions: RuleMap | None,
) -> list[PermissionChange]:
    """Compare the ``permissions`` maps only."""
    changes: list[PermissionChange] = []

    for rule_type in RULE_TYPES:
        current_value = (current_permissions or {}).get(rule_type)
        previous_value = (previous_permissions or {}).get(rule_type)

        if current_value != previous_value:
            changes.append(PermissionChange(rule_type, previous_value, current_value))

    return changes
