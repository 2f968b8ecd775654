"""
L1 Domain — Version constraint validation (pure).

Parses request constraints (``>=1.2``, ``==3.1.4``, ``~=2.0``) and
checks installed versions against them. No I/O, no subprocess.
"""

from __future__ import annotations

_OPERATORS = {
    ">=": "gte",
    "==": "exact",
    "~=": "semver_compat",
}


def parse_constraint(text: str) -> dict:
    """Turn a constraint string into a constraint rule.

    A bare version (``"1.2.3"``) means an exact match.

    Returns:
        ``{"type": "gte" | "exact" | "semver_compat", "reference": "1.2"}``
    """
    text = text.strip()
    for op, ctype in _OPERATORS.items():
        if text.startswith(op):
            return {"type": ctype, "reference": text[len(op):].strip()}
    return {"type": "exact", "reference": text}


def _parse_semver(v: str) -> tuple[int, ...]:
    return tuple(int(x) for x in v.strip().lstrip("v").split(".")[:3])


def _pad(parts: tuple[int, ...], width: int) -> tuple[int, ...]:
    return parts + (0,) * (width - len(parts))


def check_version_constraint(
    installed_version: str,
    constraint: dict,
) -> dict:
    """Validate an installed version against a constraint rule.

    Constraint types:
        - ``gte``: >= a minimum version
        - ``exact``: matches on every component the reference gives
          (``==3.1`` accepts ``3.1.7``)
        - ``semver_compat``: ~= compatibility (same major, >= minor)

    Args:
        installed_version: The version string found, e.g. ``"1.29.3"``.
        constraint: Dict with ``type`` and ``reference``, as returned by
            :func:`parse_constraint`.

    Returns:
        ``{"valid": True}`` or ``{"valid": False, "message": "..."}``.
        An unparseable version is never valid.
    """
    ctype = constraint.get("type", "gte")
    ref = constraint.get("reference", "")

    try:
        sel_parts = _parse_semver(installed_version)
        ref_parts = _parse_semver(ref)
    except (ValueError, IndexError):
        return {
            "valid": False,
            "parse_error": True,
            "message": f"Cannot compare version {installed_version!r} with {ref!r}.",
        }

    if ctype == "gte":
        if _pad(sel_parts, 3) >= _pad(ref_parts, 3):
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {installed_version} < {ref}. Minimum required: {ref}.",
        }

    elif ctype == "exact":
        if sel_parts[:len(ref_parts)] == ref_parts:
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {installed_version} != {ref}. Exact match required.",
        }

    elif ctype == "semver_compat":
        # ~=: same major, selected minor >= reference minor
        if sel_parts[0] != ref_parts[0]:
            return {
                "valid": False,
                "message": f"Major version mismatch: {installed_version} vs {ref}.",
            }
        if _pad(sel_parts, 3)[1:] >= _pad(ref_parts, 3)[1:]:
            return {"valid": True}
        return {
            "valid": False,
            "message": f"Version {installed_version} not compatible with ~={ref}.",
        }

    return {"valid": True}


def satisfies(installed_version: str | None, constraint_text: str | None) -> bool:
    """Whether ``installed_version`` meets ``constraint_text``.

    No constraint is always satisfied; an unknown installed version
    never satisfies a constraint.
    """
    if not constraint_text:
        return True
    if not installed_version:
        return False
    return bool(check_version_constraint(installed_version, parse_constraint(constraint_text))["valid"])
