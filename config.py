# config.py
"""
This module defines the data structures for the deployment configuration
and loads them from the YAML deployment file.
"""

import pulumi
import yaml
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

ALLOWED_LOCATIONS = (
    "australiaeast",
    "brazilsouth",
    "canadacentral",
    "centralus",
    "eastasia",
    "eastus",
    "eastus2",
    "francecentral",
    "germanywestcentral",
    "japaneast",
    "koreacentral",
    "northcentralus",
    "northeurope",
    "norwayeast",
    "southcentralus",
    "southeastasia",
    "swedencentral",
    "switzerlandnorth",
    "uksouth",
    "westeurope",
    "westus",
    "westus3",
)

# Consumption workload profile cpu/memory combinations
SUPPORTED_RESOURCE_PAIRS = {
    0.25: "0.5Gi",
    0.5: "1Gi",
    0.75: "1.5Gi",
    1.0: "2Gi",
    1.25: "2.5Gi",
    1.5: "3Gi",
    1.75: "3.5Gi",
    2.0: "4Gi",
}

MAX_REPLICAS_LIMIT = 30

REQUIRED_KEYS = ["service_name", "location"]


@dataclass(frozen=True)
class FeatureFlags:
    deploy_template_store: bool = False
    use_custom_templates: bool = False
    deploy_key_vault: bool = False
    deploy_application_insights: bool = False
    use_application_insights: bool = False
    security_enabled: bool = False


@dataclass
class DeploymentConfig:
    service_name: str
    location: str
    tags: Dict[str, str] = field(default_factory=dict)

    # Scaling and sizing
    min_replicas: int = 1
    max_replicas: int = 3
    cpu: float = 0.5
    memory: str = "1Gi"
    target_port: int = 80
    image_tag: str = "latest"

    # Security
    security_enabled: bool = False
    allowed_ip_ranges: List[str] = field(default_factory=list)

    # Feature flags
    deploy_template_store: bool = False
    use_custom_templates: bool = False
    deploy_key_vault: bool = False
    deploy_application_insights: bool = False
    use_application_insights: bool = False

    # Explicit resource names, defaulted from service_name when omitted
    template_storage_account_name: Optional[str] = None
    template_storage_container_name: Optional[str] = None
    key_vault_name: Optional[str] = None
    key_vault_identity_name: Optional[str] = None
    application_insights_name: Optional[str] = None
    application_insights_identity_name: Optional[str] = None
    app_insights_secret_name: Optional[str] = None
    container_app_environment_name: Optional[str] = None
    container_app_name: Optional[str] = None

    @property
    def flags(self) -> FeatureFlags:
        return FeatureFlags(
            deploy_template_store=self.deploy_template_store,
            use_custom_templates=self.use_custom_templates,
            deploy_key_vault=self.deploy_key_vault,
            deploy_application_insights=self.deploy_application_insights,
            use_application_insights=self.use_application_insights,
            security_enabled=self.security_enabled,
        )


def validate_config(config: DeploymentConfig) -> None:
    """Check the operator-facing parameters against their allowed ranges.

    Flag combinations are deliberately not cross-checked; inconsistent ones
    fall back to defaults during resolution and are only warned about.
    """
    if not isinstance(config.location, str):
        raise ValueError(f"Location must be a string, got {config.location!r}")
    if config.location.lower() not in ALLOWED_LOCATIONS:
        raise ValueError(
            f"Location '{config.location}' is not allowed. "
            f"Choose one of: {', '.join(ALLOWED_LOCATIONS)}"
        )
    if not 0 <= config.min_replicas <= config.max_replicas <= MAX_REPLICAS_LIMIT:
        raise ValueError(
            f"Replica bounds must satisfy 0 <= min_replicas <= max_replicas <= {MAX_REPLICAS_LIMIT}, "
            f"got min={config.min_replicas} max={config.max_replicas}"
        )
    expected_memory = SUPPORTED_RESOURCE_PAIRS.get(float(config.cpu))
    if expected_memory is None or expected_memory != config.memory:
        raise ValueError(
            f"Unsupported cpu/memory combination: {config.cpu}/{config.memory}"
        )

    if config.use_custom_templates and not config.deploy_template_store:
        pulumi.log.warn(
            "use_custom_templates is set without deploy_template_store; "
            "the service will point at the supplied or default storage names"
        )
    if config.use_application_insights and not config.deploy_application_insights:
        pulumi.log.warn(
            "use_application_insights is set without deploy_application_insights; "
            "the supplied or default secret name will be used"
        )
    if config.use_application_insights and not (config.deploy_key_vault or config.key_vault_name):
        pulumi.log.warn(
            "use_application_insights is set without a key vault; "
            "the connection string cannot be wired into the service"
        )


def config_from_dict(config_data: Dict[str, Any]) -> DeploymentConfig:
    # Ensure required keys exist
    for key in REQUIRED_KEYS:
        if key not in config_data:
            raise ValueError(f"Missing required configuration key: {key}")

    known = {f.name for f in fields(DeploymentConfig)}
    unknown = sorted(set(config_data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    config = DeploymentConfig(**config_data)
    validate_config(config)
    config.location = config.location.lower()
    config.tags = dict(config.tags or {})
    config.allowed_ip_ranges = list(config.allowed_ip_ranges or [])
    return config


def load_config(file_path: str) -> DeploymentConfig:
    """Load and validate YAML configuration from the given file path."""
    with open(file_path, "r") as file:
        config_data = yaml.safe_load(file) or {}

    if not isinstance(config_data, dict):
        raise ValueError(f"Configuration file '{file_path}' must contain a mapping")

    return config_from_dict(config_data)
