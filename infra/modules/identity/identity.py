"""
Managed identity module.

Declares the user-assigned identity the registry uses to reach its key.
"""

from __future__ import annotations

from iac_types import AcrInfrastructureConfig
from intents import kinds
from intents.graph import ResourceGraph, ResourceHandle


def provision_identity(
    *, graph: ResourceGraph, cfg: AcrInfrastructureConfig, rg: ResourceHandle
) -> ResourceHandle:
    return graph.declare(
        kinds.USER_ASSIGNED_IDENTITY,
        "acr-uami",
        {
            "name": cfg.identity_config.identity_name,
            "resourceGroupName": rg.output("name"),
            "location": rg.output("location"),
        },
    )
