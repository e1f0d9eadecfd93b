"""Resource kind tags understood by the engines."""

RESOURCE_GROUP = "resource-group"
KEY_VAULT = "key-vault"
KEY_VAULT_KEY = "key-vault-key"
USER_ASSIGNED_IDENTITY = "user-assigned-identity"
ROLE_ASSIGNMENT = "role-assignment"
CONTAINER_REGISTRY = "container-registry"
