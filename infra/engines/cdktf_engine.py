"""
CDKTF engine.

Realizes intents as azurerm constructs inside a TerraformStack. The
"produced" attributes are CDKTF tokens; Terraform resolves them at apply
time and orders creation from the references between constructs.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from constructs import Construct

from cdktf import TerraformOutput, TerraformResource
from cdktf_cdktf_provider_azurerm.container_registry import (
    ContainerRegistry,
    ContainerRegistryEncryption,
    ContainerRegistryIdentity,
)
from cdktf_cdktf_provider_azurerm.key_vault import KeyVault
from cdktf_cdktf_provider_azurerm.key_vault_key import KeyVaultKey
from cdktf_cdktf_provider_azurerm.resource_group import ResourceGroup
from cdktf_cdktf_provider_azurerm.role_assignment import RoleAssignment
from cdktf_cdktf_provider_azurerm.user_assigned_identity import UserAssignedIdentity

from intents import kinds
from intents.errors import UnsupportedResourceKindError
from intents.graph import Intent, ResourceGraph

logger = logging.getLogger(__name__)

# Key operations accepted by the azurerm key_vault_key schema
AZURERM_KEY_OPTS = ("decrypt", "encrypt", "sign", "unwrapKey", "verify", "wrapKey")

Builder = Callable[[str, Dict[str, Any], List[TerraformResource]], Tuple[TerraformResource, Dict[str, Any]]]


def _supported_key_opts(ops: List[str]) -> List[str]:
    dropped = [op for op in ops if op not in AZURERM_KEY_OPTS]
    if dropped:
        logger.warning("Dropping key operations not supported by azurerm: %s", ", ".join(dropped))
    return [op for op in ops if op in AZURERM_KEY_OPTS]


class CdktfEngine:
    """Maps ARM-shaped intent properties onto azurerm constructs."""

    def __init__(self, scope: Construct, subscription_id: Optional[str] = None) -> None:
        self._scope = scope
        self._subscription_id = subscription_id
        self._constructs: Dict[str, TerraformResource] = {}
        self._builders: Dict[str, Builder] = {
            kinds.RESOURCE_GROUP: self._resource_group,
            kinds.KEY_VAULT: self._key_vault,
            kinds.KEY_VAULT_KEY: self._key_vault_key,
            kinds.USER_ASSIGNED_IDENTITY: self._identity,
            kinds.ROLE_ASSIGNMENT: self._role_assignment,
            kinds.CONTAINER_REGISTRY: self._container_registry,
        }

    @property
    def constructs(self) -> Dict[str, TerraformResource]:
        return dict(self._constructs)

    def realize(self, intent: Intent, properties: Dict[str, Any]) -> Mapping[str, Any]:
        builder = self._builders.get(intent.kind)
        if builder is None:
            raise UnsupportedResourceKindError(
                f"{intent.name}: no azurerm mapping for kind '{intent.kind}'"
            )
        depends_on = [self._constructs[name] for name in intent.depends_on]
        resource, produced = builder(intent.name, properties, depends_on)
        self._constructs[intent.name] = resource
        return produced

    def _resource_group(self, name, p, depends_on):
        rg = ResourceGroup(
            self._scope,
            name,
            name=p["name"],
            location=p["location"],
            tags=p.get("tags"),
            depends_on=depends_on or None,
        )
        return rg, {"id": rg.id, "name": rg.name, "location": rg.location}

    def _key_vault(self, name, p, depends_on):
        props = p["properties"]
        kv = KeyVault(
            self._scope,
            name,
            name=p["name"],
            location=p["location"],
            resource_group_name=p["resourceGroupName"],
            tenant_id=props["tenantId"],
            sku_name=props["sku"]["name"],
            soft_delete_retention_days=props.get("softDeleteRetentionInDays", 7),
            purge_protection_enabled=props.get("enablePurgeProtection", True),
            rbac_authorization_enabled=props.get("enableRbacAuthorization", True),
            public_network_access_enabled=props.get("publicNetworkAccess", "Enabled") == "Enabled",
            depends_on=depends_on or None,
        )
        return kv, {"id": kv.id, "name": kv.name, "vaultUri": kv.vault_uri}

    def _key_vault_key(self, name, p, depends_on):
        props = p["properties"]
        key = KeyVaultKey(
            self._scope,
            name,
            name=p["keyName"],
            key_vault_id=p["vaultId"],
            key_type=props["kty"],
            key_size=props["keySize"],
            key_opts=_supported_key_opts(props["keyOps"]),
            depends_on=depends_on or None,
        )
        return key, {
            "id": key.resource_versionless_id,
            "name": key.name,
            "keyUri": key.versionless_id,
            "keyUriWithVersion": key.id,
        }

    def _identity(self, name, p, depends_on):
        uami = UserAssignedIdentity(
            self._scope,
            name,
            name=p["name"],
            location=p["location"],
            resource_group_name=p["resourceGroupName"],
            depends_on=depends_on or None,
        )
        return uami, {
            "id": uami.id,
            "principalId": uami.principal_id,
            "clientId": uami.client_id,
            "tenantId": uami.tenant_id,
        }

    def _role_assignment(self, name, p, depends_on):
        role_definition_id = p["roleDefinitionId"]
        # azurerm wants a subscription-scoped role definition id
        if self._subscription_id and role_definition_id.startswith("/providers/"):
            role_definition_id = f"/subscriptions/{self._subscription_id}{role_definition_id}"
        assignment = RoleAssignment(
            self._scope,
            name,
            scope=p["scope"],
            role_definition_id=role_definition_id,
            principal_id=p["principalId"],
            principal_type=p.get("principalType"),
            depends_on=depends_on or None,
        )
        return assignment, {"id": assignment.id}

    def _container_registry(self, name, p, depends_on):
        identity = p.get("identity") or {}
        encryption = p.get("encryption") or {}
        kv_props = encryption.get("keyVaultProperties") or {}
        acr = ContainerRegistry(
            self._scope,
            name,
            name=p["name"],
            resource_group_name=p["resourceGroupName"],
            location=p["location"],
            sku=p["sku"]["name"],
            admin_enabled=p.get("adminUserEnabled", False),
            identity=(
                ContainerRegistryIdentity(
                    type=identity["type"],
                    identity_ids=list(identity.get("userAssignedIdentities", {}).keys()),
                )
                if identity
                else None
            ),
            encryption=(
                [
                    ContainerRegistryEncryption(
                        key_vault_key_id=kv_props["keyIdentifier"],
                        identity_client_id=kv_props["identity"],
                    )
                ]
                if encryption.get("status") == "enabled"
                else None
            ),
            depends_on=depends_on or None,
        )
        return acr, {"id": acr.id, "loginServer": acr.login_server}


def emit_outputs(scope: Construct, graph: ResourceGraph, values: Mapping[str, Any]) -> None:
    """Surface submitted export values as Terraform outputs."""
    exports = graph.exports
    for name, value in values.items():
        TerraformOutput(scope, name, value=value, sensitive=exports[name].is_secret)
