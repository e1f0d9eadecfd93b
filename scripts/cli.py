from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from utils.config_loader import load_tfvars_config

from .utils import CmdError, cdktf, read_stack_outputs

STACK = "acr-cmk"
REQUIRED_OUTPUTS = ("acrLoginServer", "acrResourceId")
REQUIRED_ENV = ("ARM_SUBSCRIPTION_ID",)


def _project(args: argparse.Namespace) -> Path:
    project = Path(args.project_dir)
    if not project.exists():
        raise CmdError(f"Project directory not found: {project}")
    return project


def preflight(args: argparse.Namespace) -> None:
    missing = [k for k in REQUIRED_ENV if not os.environ.get(k)]
    if missing:
        raise CmdError("Missing environment variables: " + ", ".join(missing))
    # Tenant may come from the tfvars file or ARM_TENANT_ID; load it the way synth does
    repo_root = Path(args.project_dir).resolve().parent
    try:
        cfg = load_tfvars_config(repo_root=repo_root)
    except (ValueError, FileNotFoundError) as e:
        raise CmdError(f"Configuration check failed: {e}") from e
    print(f"Preflight OK (tenant {cfg.provider.tenant_id}, location {cfg.location}).")


def infra_synth(args: argparse.Namespace) -> None:
    project = _project(args)
    print("Synthesizing CDKTF...")
    cdktf(project, ["get"])  # ensure providers
    cdktf(project, ["synth"])  # generate JSON tf
    print("Synthesis completed.")


def infra_deploy(args: argparse.Namespace) -> None:
    project = _project(args)
    print("Synthesizing CDKTF...")
    cdktf(project, ["get"])
    cdktf(project, ["synth"])
    print("Deploying CDKTF...")
    cdktf(project, ["deploy", STACK, "--auto-approve"])
    print("CDKTF deploy completed.")
    infra_outputs(args)


def infra_destroy(args: argparse.Namespace) -> None:
    project = _project(args)
    print("Destroying CDKTF-managed infrastructure...")
    cdktf(project, ["destroy", STACK, "--auto-approve"])
    print("Destroy completed.")


def infra_outputs(args: argparse.Namespace) -> None:
    project = _project(args)
    outputs = read_stack_outputs(project, STACK)
    missing = [k for k in REQUIRED_OUTPUTS if not outputs.get(k)]
    if missing:
        raise CmdError("Stack outputs missing: " + ", ".join(missing))
    for k in REQUIRED_OUTPUTS:
        print(f"{k} = {outputs[k]}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acr-cmk", description="Container registry with customer-managed key"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    pre = sub.add_parser("preflight", help="Check environment and tfvars configuration")
    pre.add_argument("--project-dir", default="infra")
    pre.set_defaults(func=preflight)

    for name, func, help_text in (
        ("infra-synth", infra_synth, "Synthesize Terraform JSON via CDKTF"),
        ("infra-deploy", infra_deploy, "Deploy infrastructure via CDKTF"),
        ("infra-destroy", infra_destroy, "Destroy infrastructure via CDKTF"),
        ("infra-outputs", infra_outputs, "Print registry login server and resource id"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--project-dir", default="infra")
        p.set_defaults(func=func)

    return parser


def main() -> None:
    args = build_parser().parse_args()
    try:
        args.func(args)
    except CmdError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
