"""
Resource group module.

Declares the root container every other resource is scoped to.
"""

from __future__ import annotations

from iac_types import AcrInfrastructureConfig
from intents import kinds
from intents.graph import ResourceGraph, ResourceHandle


def provision_resource_group(
    *, graph: ResourceGraph, cfg: AcrInfrastructureConfig
) -> ResourceHandle:
    return graph.declare(
        kinds.RESOURCE_GROUP,
        "rg",
        {
            "name": cfg.resource_group_name,
            "location": cfg.location,
            "tags": {"Workload": "acr-cmk"},
        },
    )
