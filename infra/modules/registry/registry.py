"""
Container registry module.

Premium registry encrypted with the CMK through the user-assigned
identity. Admin user access stays disabled.
"""

from __future__ import annotations

from typing import Sequence

from iac_types import AcrInfrastructureConfig
from intents import kinds
from intents.graph import ResourceGraph, ResourceHandle

REGISTRY_SKU = "Premium"


def provision_registry(
    *,
    graph: ResourceGraph,
    cfg: AcrInfrastructureConfig,
    rg: ResourceHandle,
    identity: ResourceHandle,
    key: ResourceHandle,
    depends_on: Sequence[ResourceHandle] = (),
) -> ResourceHandle:
    """Declare the registry; ``depends_on`` should carry the key access grant."""
    return graph.declare(
        kinds.CONTAINER_REGISTRY,
        "acr",
        {
            "name": cfg.registry_config.registry_name,
            "resourceGroupName": rg.output("name"),
            "location": rg.output("location"),
            "sku": {"name": REGISTRY_SKU},
            "identity": {
                "type": "UserAssigned",
                "userAssignedIdentities": identity.output("id").apply(lambda i: {i: {}}),
            },
            "encryption": {
                "status": "enabled",
                "keyVaultProperties": {
                    "keyIdentifier": key.output("keyUri"),
                    "identity": identity.output("clientId"),
                },
            },
            "adminUserEnabled": False,
        },
        depends_on=depends_on,
    )
