"""
Preflight validation helpers.

Pure, minimal functions to validate required environment variables,
Azure resource names, and format actionable error messages for users.
"""

from __future__ import annotations

import re
from typing import List, Mapping

_KEY_VAULT_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9-]{1,22}[A-Za-z0-9]$")
_REGISTRY_NAME = re.compile(r"^[A-Za-z0-9]{5,50}$")


def missing_env(env: Mapping[str, str], keys: List[str]) -> List[str]:
    """Return the list of keys missing in the provided environment mapping."""
    return [k for k in keys if not env.get(k)]


def format_missing_env_message(missing: List[str]) -> str:
    """Format a friendly, actionable message for missing env vars."""
    if not missing:
        return ""
    lines: List[str] = []
    lines.append("Preflight check failed: missing environment variables")
    lines.append("")
    lines.append("Missing:")
    for k in missing:
        lines.append(f"  - {k}")
    lines.append("")
    lines.append("How to set them (current shell session):")
    for k in missing:
        lines.append(f"  export {k}=\"<value>\"")
    lines.append("")
    lines.append("Then re-run: python -m scripts.cli infra-deploy --project-dir infra")
    return "\n".join(lines)


def is_valid_key_vault_name(name: str) -> bool:
    # 3-24 chars, letters/digits/hyphens, starts with a letter, no "--"
    return bool(_KEY_VAULT_NAME.match(name)) and "--" not in name


def is_valid_registry_name(name: str) -> bool:
    return bool(_REGISTRY_NAME.match(name))
