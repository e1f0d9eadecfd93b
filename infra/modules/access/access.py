"""
Key access module.

Grants the managed identity crypto access to the CMK. The role assignment
needs the identity's principal id and the key's resource path, both only
known after those resources exist, so its properties are a join of the two.
"""

from __future__ import annotations

from typing import Any, Dict

from intents import kinds
from intents.graph import ResourceGraph, ResourceHandle
from intents.outputs import Output, join2

# Key Vault Crypto Service Encryption User
KEY_VAULT_CRYPTO_ROLE_ID = "14b46e9e-c2b7-41b4-b07b-48a6ebf60603"
KEY_VAULT_CRYPTO_ROLE_DEFINITION = (
    f"/providers/Microsoft.Authorization/roleDefinitions/{KEY_VAULT_CRYPTO_ROLE_ID}"
)


def role_assignment_properties(principal_id: str, key_path: str) -> Dict[str, Any]:
    if not principal_id:
        raise ValueError("principal id resolved to an empty value")
    if not key_path:
        raise ValueError("key resource path resolved to an empty value")
    return {
        "principalId": principal_id,
        "principalType": "ServicePrincipal",
        "roleDefinitionId": KEY_VAULT_CRYPTO_ROLE_DEFINITION,
        "scope": key_path,
    }


def provision_key_access(
    *, graph: ResourceGraph, identity: ResourceHandle, key_path: Output
) -> ResourceHandle:
    properties = join2(identity.output("principalId"), key_path, role_assignment_properties)
    return graph.declare(kinds.ROLE_ASSIGNMENT, "uami-keyvault-key-access", properties)
