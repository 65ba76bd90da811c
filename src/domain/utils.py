"""Domain Utilities - small helpers shared by records, trees and mappers.

Security Impact:
    - No security impact - pure utility functions
"""

from typing import Any, Optional


def prune_empty(value: Any) -> Any:
    """Drop None values, empty lists and empty dicts recursively.

    FHIR JSON forbids empty arrays and objects, so every wire export runs
    through this after ``model_dump``.

    Parameters:
        value: JSON-compatible value (dict, list or scalar)

    Returns:
        The same structure without empty members
    """
    if isinstance(value, dict):
        pruned = {k: prune_empty(v) for k, v in value.items()}
        return {k: v for k, v in pruned.items() if v not in (None, [], {})}
    if isinstance(value, list):
        pruned = [prune_empty(v) for v in value]
        return [v for v in pruned if v not in (None, [], {})]
    return value


def non_blank(value: Any) -> Optional[str]:
    """Return ``value`` stripped when it is a non-blank string, else None."""
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def capitalize_code(code: str) -> str:
    """Derive a display label from a code ("active" -> "Active")."""
    return code[:1].upper() + code[1:]
