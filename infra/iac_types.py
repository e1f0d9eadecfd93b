from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProviderConfig:
    tenant_id: str
    subscription_id: Optional[str]
    location: str


@dataclass(frozen=True)
class KeyVaultConfig:
    vault_name: str
    sku: str  # standard or premium
    public_network_access: bool
    purge_protection_enabled: bool
    soft_delete_retention_days: int


@dataclass(frozen=True)
class EncryptionKeyConfig:
    key_name: str


@dataclass(frozen=True)
class IdentityConfig:
    identity_name: str


@dataclass(frozen=True)
class RegistryConfig:
    registry_name: str


@dataclass(frozen=True)
class AcrInfrastructureConfig:
    resource_group_name: str
    location: str
    provider: ProviderConfig
    key_vault_config: KeyVaultConfig
    key_config: EncryptionKeyConfig
    identity_config: IdentityConfig
    registry_config: RegistryConfig
