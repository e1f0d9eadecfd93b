"""Synthesis tests; the jsii bindings need a Node.js runtime."""

import json
import shutil

import pytest

if shutil.which("node") is None:
    pytest.skip("Node.js runtime not available for cdktf", allow_module_level=True)

from cdktf import Testing, TerraformStack  # noqa: E402
from cdktf_cdktf_provider_azurerm.container_registry import ContainerRegistry  # noqa: E402
from cdktf_cdktf_provider_azurerm.role_assignment import RoleAssignment  # noqa: E402

from conftest import SUBSCRIPTION, make_config  # noqa: E402
from engines.cdktf_engine import CdktfEngine, emit_outputs  # noqa: E402
from intents.errors import UnsupportedResourceKindError  # noqa: E402
from intents.graph import ResourceGraph  # noqa: E402
from main import AcrCmkStack, main  # noqa: E402
from stacks.acr_stack import build_acr_graph  # noqa: E402


def _synth_graph(subscription_id=SUBSCRIPTION):
    app = Testing.app()
    stack = TerraformStack(app, "test")
    acr_stack = build_acr_graph(make_config())
    engine = CdktfEngine(stack, subscription_id=subscription_id)
    values = acr_stack.graph.submit(engine)
    emit_outputs(stack, acr_stack.graph, values)
    return Testing.synth(stack), engine


def _resources(synthesized, resource_type):
    return list(json.loads(synthesized)["resource"][resource_type].values())


def _block(value):
    # nested blocks render as an object or a one-element list
    return value[0] if isinstance(value, list) else value


def test_registry_is_premium_without_admin_user():
    synthesized, _ = _synth_graph()
    assert Testing.to_have_resource_with_properties(
        synthesized,
        ContainerRegistry.TF_RESOURCE_TYPE,
        {"name": "cmktestacr", "sku": "Premium", "admin_enabled": False},
    )
    (acr,) = _resources(synthesized, "azurerm_container_registry")
    identity, encryption = _block(acr["identity"]), _block(acr["encryption"])
    assert identity["type"] == "UserAssigned"
    assert "azurerm_user_assigned_identity" in encryption["identity_client_id"]
    assert "azurerm_key_vault_key" in encryption["key_vault_key_id"]
    assert any("azurerm_role_assignment" in dep for dep in acr["depends_on"])


def test_role_assignment_uses_subscription_scoped_crypto_role():
    synthesized, _ = _synth_graph()
    assert Testing.to_have_resource_with_properties(
        synthesized,
        RoleAssignment.TF_RESOURCE_TYPE,
        {
            "principal_type": "ServicePrincipal",
            "role_definition_id": (
                f"/subscriptions/{SUBSCRIPTION}/providers/Microsoft.Authorization/"
                "roleDefinitions/14b46e9e-c2b7-41b4-b07b-48a6ebf60603"
            ),
        },
    )
    (grant,) = _resources(synthesized, "azurerm_role_assignment")
    assert "/keys/" in grant["scope"]
    assert "azurerm_key_vault_key." in grant["scope"]


def test_key_drops_operations_azurerm_rejects():
    synthesized, _ = _synth_graph()
    (key,) = _resources(synthesized, "azurerm_key_vault_key")
    assert key["key_type"] == "RSA"
    assert key["key_size"] == 2048
    assert key["key_opts"] == ["wrapKey", "unwrapKey"]


def test_key_vault_has_rbac_and_tenant():
    synthesized, _ = _synth_graph()
    (kv,) = _resources(synthesized, "azurerm_key_vault")
    assert kv["rbac_authorization_enabled"] is True
    assert kv["tenant_id"] == make_config().provider.tenant_id
    assert kv["public_network_access_enabled"] is True


def test_outputs_are_emitted():
    synthesized, engine = _synth_graph()
    outputs = json.loads(synthesized)["output"]
    assert set(outputs) >= {"acrLoginServer", "acrResourceId"}
    assert set(engine.constructs) == {
        "rg",
        "kv",
        "cmk-key",
        "acr-uami",
        "uami-keyvault-key-access",
        "acr",
    }


def test_unknown_kind_is_rejected():
    app = Testing.app()
    stack = TerraformStack(app, "test")
    graph = ResourceGraph()
    graph.declare("storage-account", "sa", {})
    with pytest.raises(UnsupportedResourceKindError):
        graph.submit(CdktfEngine(stack))


def test_acr_cmk_stack_synthesizes():
    app = Testing.app()
    stack = AcrCmkStack(app, "acr-cmk", make_config())
    synthesized = json.loads(Testing.synth(stack))
    assert "azurerm" in synthesized["provider"]
    assert {"acrLoginServer", "acrResourceId", "tenant_id"} <= set(synthesized["output"])


def test_main_exits_2_without_subscription(monkeypatch):
    monkeypatch.delenv("ARM_SUBSCRIPTION_ID", raising=False)
    with pytest.raises(SystemExit) as info:
        main()
    assert info.value.code == 2


def test_main_exits_1_without_tenant(tmp_path, monkeypatch):
    tfvars = tmp_path / "no-tenant.tfvars"
    tfvars.write_text(
        'env = "dev"\nlocation = "westeurope"\nname_prefix = "cmk"\nkv_sku = "standard"\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("ARM_SUBSCRIPTION_ID", SUBSCRIPTION)
    monkeypatch.setenv("TFVARS_FILE", str(tfvars))
    monkeypatch.delenv("ARM_TENANT_ID", raising=False)
    with pytest.raises(SystemExit) as info:
        main()
    assert info.value.code == 1
