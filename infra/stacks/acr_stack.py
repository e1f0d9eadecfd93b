"""
ACR with customer-managed key: graph composition.

Wires the resource modules into one intent graph and declares the two
stack outputs. Nothing here talks to Azure; the graph is handed to an
engine (see engines/cdktf_engine.py) for realization.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from iac_types import AcrInfrastructureConfig
from intents.errors import ConfigError
from intents.graph import ResourceGraph, ResourceHandle
from modules.access.access import provision_key_access
from modules.identity.identity import provision_identity
from modules.keyvault.keyvault import provision_encryption_key, provision_key_vault
from modules.registry.registry import provision_registry
from modules.resource_group.resource_group import provision_resource_group
from utils.validation import is_valid_key_vault_name, is_valid_registry_name

LOGIN_SERVER_OUTPUT = "acrLoginServer"
RESOURCE_ID_OUTPUT = "acrResourceId"


@dataclass(frozen=True)
class AcrStack:
    graph: ResourceGraph
    resource_group: ResourceHandle
    key_vault: ResourceHandle
    key: ResourceHandle
    identity: ResourceHandle
    key_access: ResourceHandle
    registry: ResourceHandle
    tenant_id: str


def build_stack_config(config: AcrInfrastructureConfig) -> AcrInfrastructureConfig:
    """Check the config before any intent is declared."""
    if not config.provider.tenant_id or not config.provider.tenant_id.strip():
        raise ConfigError("A tenant id is required to declare the stack")
    if not is_valid_key_vault_name(config.key_vault_config.vault_name):
        raise ConfigError(f"Invalid Key Vault name: {config.key_vault_config.vault_name}")
    if not is_valid_registry_name(config.registry_config.registry_name):
        raise ConfigError(f"Invalid registry name: {config.registry_config.registry_name}")
    return config


def build_acr_graph(config: AcrInfrastructureConfig) -> AcrStack:
    """Declare every intent of the stack in dependency order."""
    cfg = build_stack_config(config)
    graph = ResourceGraph()

    rg = provision_resource_group(graph=graph, cfg=cfg)
    kv, tenant_id = provision_key_vault(graph=graph, cfg=cfg, rg=rg)
    key, key_path = provision_encryption_key(graph=graph, cfg=cfg, rg=rg, kv=kv)
    uami = provision_identity(graph=graph, cfg=cfg, rg=rg)
    access = provision_key_access(graph=graph, identity=uami, key_path=key_path)
    acr = provision_registry(
        graph=graph, cfg=cfg, rg=rg, identity=uami, key=key, depends_on=[access]
    )

    graph.export(LOGIN_SERVER_OUTPUT, acr.output("loginServer"))
    graph.export(RESOURCE_ID_OUTPUT, acr.output("id"))

    return AcrStack(
        graph=graph,
        resource_group=rg,
        key_vault=kv,
        key=key,
        identity=uami,
        key_access=access,
        registry=acr,
        tenant_id=tenant_id,
    )


def synth_config_json(config: AcrInfrastructureConfig) -> Dict[str, Any]:
    """Convert dataclasses to plain dict for diagnostics or outputs."""
    return asdict(config)
