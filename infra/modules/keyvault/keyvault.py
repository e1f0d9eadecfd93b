"""
Key Vault module.

Declares an RBAC-enabled Key Vault and the RSA key used as the
registry's customer-managed key.
"""

from __future__ import annotations

import logging
from typing import Tuple

from iac_types import AcrInfrastructureConfig
from intents import kinds
from intents.errors import ConfigError
from intents.graph import ResourceGraph, ResourceHandle
from intents.outputs import Output, join2

logger = logging.getLogger(__name__)

KEY_TYPE = "RSA"
KEY_SIZE = 2048
KEY_OPS = ["wrapKey", "unwrapKey", "get"]


def provision_key_vault(
    *, graph: ResourceGraph, cfg: AcrInfrastructureConfig, rg: ResourceHandle
) -> Tuple[ResourceHandle, str]:
    """Declare Key Vault and return (vault, tenant_id)."""
    tenant_id = cfg.provider.tenant_id
    if not tenant_id or not tenant_id.strip():
        raise ConfigError("A tenant id must be set for Key Vault tenant binding")

    kv_cfg = cfg.key_vault_config
    if kv_cfg.public_network_access:
        logger.warning(
            "Key Vault '%s' allows public network access; review whether this is intended",
            kv_cfg.vault_name,
        )

    kv = graph.declare(
        kinds.KEY_VAULT,
        "kv",
        {
            "name": kv_cfg.vault_name,
            "resourceGroupName": rg.output("name"),
            "location": rg.output("location"),
            "properties": {
                "tenantId": tenant_id,
                "sku": {"family": "A", "name": kv_cfg.sku},
                # RBAC instead of access policies
                "accessPolicies": [],
                "enableRbacAuthorization": True,
                "publicNetworkAccess": "Enabled" if kv_cfg.public_network_access else "Disabled",
                "enablePurgeProtection": kv_cfg.purge_protection_enabled,
                "softDeleteRetentionInDays": kv_cfg.soft_delete_retention_days,
            },
        },
    )
    return kv, tenant_id


def provision_encryption_key(
    *,
    graph: ResourceGraph,
    cfg: AcrInfrastructureConfig,
    rg: ResourceHandle,
    kv: ResourceHandle,
) -> Tuple[ResourceHandle, Output]:
    """Declare the CMK and return (key, key resource path)."""
    key_name = cfg.key_config.key_name
    key = graph.declare(
        kinds.KEY_VAULT_KEY,
        key_name,
        {
            "resourceGroupName": rg.output("name"),
            "vaultName": kv.output("name"),
            "vaultId": kv.output("id"),
            "keyName": key_name,
            "properties": {
                "kty": KEY_TYPE,
                "keySize": KEY_SIZE,
                "keyOps": list(KEY_OPS),
            },
        },
    )
    key_path = join2(
        kv.output("id"),
        key.output("name"),
        lambda vault_id, name: f"{vault_id}/keys/{name}",
    )
    return key, key_path
