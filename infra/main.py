"""
CDKTF entrypoint for the Azure Container Registry with customer-managed key.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from constructs import Construct
from cdktf import App, TerraformOutput, TerraformStack

from cdktf_cdktf_provider_azurerm.provider import (
    AzurermProvider,
    AzurermProviderFeatures,
)

from engines.cdktf_engine import CdktfEngine, emit_outputs
from iac_types import AcrInfrastructureConfig
from intents.errors import ProvisioningError
from stacks.acr_stack import build_acr_graph, synth_config_json
from utils.config_loader import load_tfvars_config
from utils.validation import missing_env, format_missing_env_message

STACK_ID = "acr-cmk"


class AcrCmkStack(TerraformStack):
    """TerraformStack that realizes the ACR intent graph."""

    def __init__(
        self, scope: Construct, id: str, config: AcrInfrastructureConfig
    ) -> None:
        super().__init__(scope, id)

        # Provider
        AzurermProvider(
            self,
            "azurerm",
            features=[AzurermProviderFeatures()],
            tenant_id=config.provider.tenant_id,
            subscription_id=config.provider.subscription_id,
        )

        # Declaration fails here, before anything is submitted
        stack = build_acr_graph(config)

        engine = CdktfEngine(self, subscription_id=config.provider.subscription_id)
        values = stack.graph.submit(engine)
        emit_outputs(self, stack.graph, values)

        TerraformOutput(self, "tenant_id", value=stack.tenant_id)


def main() -> None:
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    repo_root = Path(__file__).resolve().parents[1]

    # Preflight: ensure required env vars are present before synthesizing
    required_env = ["ARM_SUBSCRIPTION_ID"]
    missing = missing_env(env=os.environ, keys=required_env)
    if missing:
        msg = format_missing_env_message(missing)
        print(msg, file=sys.stderr)
        sys.exit(2)

    app = App()
    try:
        cfg = load_tfvars_config(repo_root=repo_root)
        AcrCmkStack(app, STACK_ID, cfg)
    except (ValueError, FileNotFoundError) as ex:
        # Surface a concise, friendly message instead of a long traceback
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)
    except ProvisioningError as ex:
        print(f"Provisioning graph failed: {ex}", file=sys.stderr)
        sys.exit(1)

    # Surface a copy of the config used for traceability
    _cfg_json = synth_config_json(cfg)
    TerraformOutput(
        app.node.try_find_child(STACK_ID), "config_json", value=str(_cfg_json)
    )

    try:
        app.synth()
    except Exception as ex:  # noqa: BLE001 - present actionable error
        print("Synthesis failed.", file=sys.stderr)
        print(str(ex), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
