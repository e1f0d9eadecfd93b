"""Shared fixtures: a typed config and an in-memory provisioning engine."""

from typing import Any, Dict, List, Mapping, Optional, Set

import pytest

from iac_types import (
    AcrInfrastructureConfig,
    EncryptionKeyConfig,
    IdentityConfig,
    KeyVaultConfig,
    ProviderConfig,
    RegistryConfig,
)
from intents.graph import Intent

SUBSCRIPTION = "00000000-0000-0000-0000-00000000beef"
TENANT = "11111111-2222-3333-4444-555555555555"


def _rg_id(rg_name: str) -> str:
    return f"/subscriptions/{SUBSCRIPTION}/resourceGroups/{rg_name}"


class FakeEngine:
    """Records every realization and produces deterministic attributes."""

    def __init__(self, fail_on: Optional[Set[str]] = None) -> None:
        self.fail_on = fail_on or set()
        self.realized: List[str] = []
        self.properties: Dict[str, Dict[str, Any]] = {}

    def realize(self, intent: Intent, properties: Dict[str, Any]) -> Mapping[str, Any]:
        if intent.name in self.fail_on:
            raise RuntimeError(f"quota exceeded while creating {intent.name}")
        self.realized.append(intent.name)
        self.properties[intent.name] = properties
        return getattr(self, "_" + intent.kind.replace("-", "_"))(properties)

    def _resource_group(self, p):
        return {"id": _rg_id(p["name"]), "name": p["name"], "location": p["location"]}

    def _key_vault(self, p):
        vault_id = f"{_rg_id(p['resourceGroupName'])}/providers/Microsoft.KeyVault/vaults/{p['name']}"
        return {"id": vault_id, "name": p["name"], "vaultUri": f"https://{p['name']}.vault.azure.net/"}

    def _key_vault_key(self, p):
        uri = f"https://{p['vaultName']}.vault.azure.net/keys/{p['keyName']}"
        return {
            "id": f"{p['vaultId']}/keys/{p['keyName']}",
            "name": p["keyName"],
            "keyUri": uri,
            "keyUriWithVersion": f"{uri}/0123456789abcdef",
        }

    def _user_assigned_identity(self, p):
        return {
            "id": (
                f"{_rg_id(p['resourceGroupName'])}/providers/"
                f"Microsoft.ManagedIdentity/userAssignedIdentities/{p['name']}"
            ),
            "principalId": f"principal-{p['name']}",
            "clientId": f"client-{p['name']}",
            "tenantId": TENANT,
        }

    def _role_assignment(self, p):
        return {"id": f"{p['scope']}/providers/Microsoft.Authorization/roleAssignments/ra-0001"}

    def _container_registry(self, p):
        return {
            "id": (
                f"{_rg_id(p['resourceGroupName'])}/providers/"
                f"Microsoft.ContainerRegistry/registries/{p['name']}"
            ),
            "loginServer": f"{p['name']}.azurecr.io",
        }


def make_config(tenant_id: str = TENANT) -> AcrInfrastructureConfig:
    return AcrInfrastructureConfig(
        resource_group_name="cmk-test-rg",
        location="westeurope",
        provider=ProviderConfig(
            tenant_id=tenant_id, subscription_id=SUBSCRIPTION, location="westeurope"
        ),
        key_vault_config=KeyVaultConfig(
            vault_name="cmk-test-kv",
            sku="standard",
            public_network_access=True,
            purge_protection_enabled=True,
            soft_delete_retention_days=7,
        ),
        key_config=EncryptionKeyConfig(key_name="cmk-key"),
        identity_config=IdentityConfig(identity_name="cmk-test-acr-uami"),
        registry_config=RegistryConfig(registry_name="cmktestacr"),
    )


@pytest.fixture
def config() -> AcrInfrastructureConfig:
    return make_config()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()
