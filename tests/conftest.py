from __future__ import annotations

import sys
from pathlib import Path

import pulumi
import pytest

# Allow tests to import the program modules from the repository root.
repo_root = Path(__file__).parents[1]
sys.path.insert(0, str(repo_root))

from config import DeploymentConfig  # noqa: E402

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
TENANT_ID = "11111111-1111-1111-1111-111111111111"


class DeploymentMocks(pulumi.runtime.Mocks):
    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        outputs.setdefault("name", args.name)
        if args.typ == "azure-native:app:ContainerApp":
            configuration = dict(outputs.get("configuration") or {})
            ingress = dict(configuration.get("ingress") or {})
            ingress["fqdn"] = f"{outputs.get('containerAppName', args.name)}.example.azurecontainerapps.io"
            configuration["ingress"] = ingress
            outputs["configuration"] = configuration
            identity = dict(outputs.get("identity") or {})
            if isinstance(identity.get("userAssignedIdentities"), list):
                # The output type is a mapping of identity id to identity details
                identity["userAssignedIdentities"] = {
                    identity_id: {} for identity_id in identity["userAssignedIdentities"]
                }
                outputs["identity"] = identity
        if args.typ == "azure-native:managedidentity:UserAssignedIdentity":
            outputs["principalId"] = f"{args.name}-principal"
        return f"{args.name}_id", outputs

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token == "azure-native:authorization:getClientConfig":
            return {
                "clientId": "client",
                "objectId": "object",
                "subscriptionId": SUBSCRIPTION_ID,
                "tenantId": TENANT_ID,
            }
        if args.token == "azure-native:operationalinsights:getSharedKeys":
            return {"primarySharedKey": "shared-key", "secondarySharedKey": "shared-key-2"}
        return {}


pulumi.runtime.set_mocks(DeploymentMocks(), preview=False)


@pytest.fixture(autouse=True)
def pulumi_logs(monkeypatch):
    """Capture pulumi.log messages per severity instead of sending them to the engine."""
    captured = {"debug": [], "info": [], "warn": [], "error": []}
    for severity in captured:
        monkeypatch.setattr(
            pulumi.log,
            severity,
            lambda msg, *args, _severity=severity, **kwargs: captured[_severity].append(msg),
        )
    return captured


@pytest.fixture
def make_config():
    def _make(**overrides) -> DeploymentConfig:
        values = {"service_name": "fc1", "location": "eastus"}
        values.update(overrides)
        return DeploymentConfig(**values)

    return _make
