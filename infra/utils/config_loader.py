"""
Config loader for tfvars -> typed config used by the CDKTF stack.

Functional, pure helpers that parse a minimal subset of .tfvars syntax
for the variables used by this repo. No external dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from iac_types import (
    AcrInfrastructureConfig,
    EncryptionKeyConfig,
    IdentityConfig,
    KeyVaultConfig,
    ProviderConfig,
    RegistryConfig,
)
from intents.errors import ConfigError
from utils.validation import is_valid_key_vault_name, is_valid_registry_name

DEFAULT_TFVARS_FILE = "vars/dev.tfvars"
CMK_KEY_NAME = "cmk-key"


def _strip_quotes(value: str) -> str:
    if value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    if value.startswith("'") and value.endswith("'"):
        return value[1:-1]
    return value


def _parse_tfvars(content: str) -> Dict[str, str]:
    """Very small tfvars parser for simple key = value pairs.

    Supports strings, integers, booleans on single lines.
    Lines starting with '#' are ignored.
    """
    vars_map: Dict[str, str] = {}
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        # Remove potential trailing comments
        if " #" in val:
            val = val.split(" #", 1)[0].strip()
        vars_map[key] = val
    return vars_map


def _to_bool(value: str) -> bool:
    if value.lower() in ("true", "1"):
        return True
    if value.lower() in ("false", "0"):
        return False
    raise ConfigError(f"Invalid boolean value: {value}")


def _to_int(value: str) -> int:
    try:
        return int(value)
    except Exception as ex:  # noqa: BLE001 - rethrow with context
        raise ConfigError(f"Invalid int value: {value}") from ex


def _required(vars_map: Dict[str, str], key: str) -> str:
    if key not in vars_map:
        raise ConfigError(f"Missing required var: {key}")
    return vars_map[key]


def _optional(vars_map: Dict[str, str], key: str, default: str) -> str:
    return _strip_quotes(vars_map[key]) if key in vars_map else default


def _build_names(prefix: str, env: str) -> Tuple[str, str, str, str]:
    rg = f"{prefix}-{env}-rg"
    kv = f"{prefix}-{env}-kv"
    uami = f"{prefix}-{env}-acr-uami"
    acr = f"{prefix}{env}acr".replace("-", "")
    return rg, kv, uami, acr


def _resolve_tenant_id(vars_map: Dict[str, str], environ: Mapping[str, str]) -> str:
    tenant_id = _optional(vars_map, "tenant_id", "") or environ.get("ARM_TENANT_ID", "")
    if not tenant_id.strip():
        raise ConfigError(
            "A tenant id is required: set tenant_id in the tfvars file or ARM_TENANT_ID"
        )
    return tenant_id.strip()


def _build_kv_config(vars_map: Dict[str, str], vault_name: str) -> KeyVaultConfig:
    if not is_valid_key_vault_name(vault_name):
        raise ConfigError(
            f"Invalid Key Vault name '{vault_name}': 3-24 letters, digits or hyphens, starting with a letter"
        )
    return KeyVaultConfig(
        vault_name=vault_name,
        sku=_strip_quotes(_required(vars_map, "kv_sku")),
        public_network_access=_to_bool(_optional(vars_map, "kv_public_network_access", "true")),
        purge_protection_enabled=_to_bool(_optional(vars_map, "kv_purge_protection", "true")),
        soft_delete_retention_days=_to_int(
            _optional(vars_map, "kv_soft_delete_retention_days", "7")
        ),
    )


def _build_registry_config(registry_name: str) -> RegistryConfig:
    if not is_valid_registry_name(registry_name):
        raise ConfigError(
            f"Invalid registry name '{registry_name}': 5-50 alphanumeric characters"
        )
    return RegistryConfig(registry_name=registry_name)


def build_config(
    vars_map: Dict[str, str], environ: Optional[Mapping[str, str]] = None
) -> AcrInfrastructureConfig:
    """Build the typed config from parsed tfvars and the environment."""
    environ = os.environ if environ is None else environ

    env = _strip_quotes(_required(vars_map, "env"))
    location = _strip_quotes(_required(vars_map, "location"))
    prefix = _strip_quotes(_required(vars_map, "name_prefix"))

    rg_name, kv_name, uami_name, acr_name = _build_names(prefix, env)

    provider = ProviderConfig(
        tenant_id=_resolve_tenant_id(vars_map, environ),
        subscription_id=environ.get("ARM_SUBSCRIPTION_ID") or None,
        location=location,
    )

    return AcrInfrastructureConfig(
        resource_group_name=rg_name,
        location=location,
        provider=provider,
        key_vault_config=_build_kv_config(vars_map, kv_name),
        key_config=EncryptionKeyConfig(key_name=CMK_KEY_NAME),
        identity_config=IdentityConfig(identity_name=uami_name),
        registry_config=_build_registry_config(acr_name),
    )


def load_tfvars_config(
    *, repo_root: Path, environ: Optional[Mapping[str, str]] = None
) -> AcrInfrastructureConfig:
    environ = os.environ if environ is None else environ
    # Use default if env var is missing or empty
    tfvars_file_env = environ.get("TFVARS_FILE")
    tfvars_file = (
        tfvars_file_env
        if (tfvars_file_env and tfvars_file_env.strip())
        else DEFAULT_TFVARS_FILE
    )
    vars_path = (repo_root / tfvars_file).resolve()
    if not vars_path.exists():
        raise FileNotFoundError(f"tfvars file not found: {vars_path}")

    content = vars_path.read_text(encoding="utf-8")
    return build_config(_parse_tfvars(content), environ)
