"""
Parameter resolution between provisioning steps.

For every optional sub-resource the service step needs one identifier. If
the step owning that sub-resource ran, its output is authoritative;
otherwise the caller-supplied (or default) name is passed through
unchanged. Resolution never fails: every input has a default, and
inconsistent flag combinations silently fall back to the supplied values.
"""

import pulumi
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import DeploymentConfig, FeatureFlags
from naming import ResourceNames

SERVICE_IMAGE_REPOSITORY = "mcr.microsoft.com/azuredocs/containerapps-helloworld"


@dataclass
class DependentResourcesOutputs:
    template_storage_account_name: Any
    template_storage_container_name: Any
    key_vault_name: Any
    key_vault_identity_name: Any


@dataclass
class InfrastructureOutputs:
    container_app_environment_name: Any
    container_app_environment_id: Any
    application_insights_name: Any
    application_insights_identity_name: Any
    app_insights_secret_name: Any


@dataclass
class ServiceParameters:
    location: str
    container_app_name: str
    image: str
    container_app_environment_id: Any
    min_replicas: int
    max_replicas: int
    cpu: float
    memory: str
    target_port: int
    security_enabled: bool
    allowed_ip_ranges: List[str]
    use_custom_templates: bool
    template_storage_account_name: Any
    template_storage_container_name: Any
    key_vault_name: Any
    key_vault_identity_name: Any
    use_application_insights: bool
    application_insights_name: Any
    application_insights_identity_name: Any
    app_insights_secret_name: Any
    tags: Dict[str, str] = field(default_factory=dict)


def resolve(flag: bool, produced: Any, supplied: Any) -> Any:
    """Return the module output when its module ran, the supplied value otherwise."""
    return produced if flag else supplied


def dependent_resources_enabled(flags: FeatureFlags) -> bool:
    return flags.deploy_template_store or flags.deploy_key_vault


def dependent_resources_inputs(config: DeploymentConfig, names: ResourceNames) -> Dict[str, Any]:
    return {
        "location": config.location,
        "deploy_template_store": config.deploy_template_store,
        "template_storage_account_name": names.template_storage_account_name,
        "template_storage_container_name": names.template_storage_container_name,
        "deploy_key_vault": config.deploy_key_vault,
        "key_vault_name": names.key_vault_name,
        "key_vault_identity_name": names.key_vault_identity_name,
    }


def infrastructure_inputs(config: DeploymentConfig, names: ResourceNames) -> Dict[str, Any]:
    return {
        "location": config.location,
        "env_name": names.container_app_environment_name,
        "deploy_application_insights": config.deploy_application_insights,
        "application_insights_name": names.application_insights_name,
        "application_insights_identity_name": names.application_insights_identity_name,
        "app_insights_secret_name": names.app_insights_secret_name,
        "key_vault_name": names.key_vault_name,
    }


def _produced(outputs: Optional[Any], attr: str) -> Any:
    # A gated-off step has no outputs
    return getattr(outputs, attr) if outputs is not None else None


def resolve_service_parameters(
    config: DeploymentConfig,
    names: ResourceNames,
    dependent: Optional[DependentResourcesOutputs],
    infrastructure: InfrastructureOutputs,
) -> ServiceParameters:
    flags = config.flags

    def role(name: str, flag: bool, outputs: Optional[Any], supplied: Any) -> Any:
        value = resolve(flag, _produced(outputs, name), supplied)
        source = "module output" if flag else "supplied"
        pulumi.log.debug(f"Resolved '{name}' from {source}")
        return value

    return ServiceParameters(
        location=config.location,
        container_app_name=names.container_app_name,
        image=f"{SERVICE_IMAGE_REPOSITORY}:{config.image_tag}",
        container_app_environment_id=infrastructure.container_app_environment_id,
        min_replicas=config.min_replicas,
        max_replicas=config.max_replicas,
        cpu=config.cpu,
        memory=config.memory,
        target_port=config.target_port,
        security_enabled=flags.security_enabled,
        allowed_ip_ranges=list(config.allowed_ip_ranges),
        use_custom_templates=flags.use_custom_templates,
        template_storage_account_name=role(
            "template_storage_account_name",
            flags.deploy_template_store,
            dependent,
            names.template_storage_account_name,
        ),
        template_storage_container_name=role(
            "template_storage_container_name",
            flags.deploy_template_store,
            dependent,
            names.template_storage_container_name,
        ),
        key_vault_name=role(
            "key_vault_name", flags.deploy_key_vault, dependent, names.key_vault_name
        ),
        key_vault_identity_name=role(
            "key_vault_identity_name",
            flags.deploy_key_vault,
            dependent,
            names.key_vault_identity_name,
        ),
        use_application_insights=flags.use_application_insights,
        application_insights_name=role(
            "application_insights_name",
            flags.deploy_application_insights,
            infrastructure,
            names.application_insights_name,
        ),
        application_insights_identity_name=role(
            "application_insights_identity_name",
            flags.deploy_application_insights,
            infrastructure,
            names.application_insights_identity_name,
        ),
        app_insights_secret_name=role(
            "app_insights_secret_name",
            flags.deploy_application_insights,
            infrastructure,
            names.app_insights_secret_name,
        ),
        tags=dict(config.tags),
    )
