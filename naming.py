"""
Default resource names derived from the service name.

Each function computes one default; `default_names` applies them to a
deployment config, letting explicitly configured names win. Names owned by
an optional capability are only derived when that capability is deployed
and are empty otherwise.
"""

import re
from dataclasses import dataclass
from typing import Optional

AZURE_LOCATION_ABBREVIATIONS = {
    "eastus": "eus",
    "eastus2": "eus2",
    "westus": "wus",
    "westus2": "wus2",
    "westus3": "wus3",
    "centralus": "cus",
    "northcentralus": "ncus",
    "southcentralus": "scus",
    "canadacentral": "ccc",
    "canadaeast": "cce",
    "brazilsouth": "brs",
    "northeurope": "ne",
    "westeurope": "we",
    "uksouth": "uks",
    "ukwest": "ukw",
    "francecentral": "frc",
    "germanywestcentral": "gwc",
    "norwayeast": "nwe",
    "swedencentral": "swc",
    "switzerlandnorth": "swn",
    "australiaeast": "aue",
    "japaneast": "jpe",
    "koreacentral": "kc",
    "southeastasia": "sea",
    "eastasia": "ea",
}

STORAGE_ACCOUNT_NAME_MAX_LENGTH = 24
DEFAULT_STORAGE_CONTAINER_NAME = "templates"
DEFAULT_APP_INSIGHTS_SECRET_NAME = "appinsights-connection-string"


def get_abbreviation(location: str) -> str:
    # If the location is recognized, use abbreviation; else fallback to first 3 letters
    return AZURE_LOCATION_ABBREVIATIONS.get(location.lower(), location[:3].lower())


def resource_group_name(service_name: str, location: str) -> str:
    return f"{service_name}-{get_abbreviation(location)}-rg".lower()


def storage_account_name(service_name: str) -> str:
    """Storage accounts only allow 3-24 lowercase letters and digits."""
    name = re.sub(r"[^a-z0-9]", "", f"{service_name}storageaccount".lower())
    return name[:STORAGE_ACCOUNT_NAME_MAX_LENGTH]


def storage_container_name() -> str:
    return DEFAULT_STORAGE_CONTAINER_NAME


def key_vault_name(service_name: str, deploy_key_vault: bool) -> str:
    return f"{service_name}-kv" if deploy_key_vault else ""


def key_vault_identity_name(service_name: str, deploy_key_vault: bool) -> str:
    return f"{service_name}-kv-uami" if deploy_key_vault else ""


def application_insights_name(service_name: str, deploy_application_insights: bool) -> str:
    return f"{service_name}-app-insights" if deploy_application_insights else ""


def application_insights_identity_name(service_name: str, deploy_application_insights: bool) -> str:
    return f"{service_name}-app-insights-uami" if deploy_application_insights else ""


def app_insights_secret_name(deploy_application_insights: bool) -> str:
    return DEFAULT_APP_INSIGHTS_SECRET_NAME if deploy_application_insights else ""


def container_app_environment_name(service_name: str) -> str:
    return f"{service_name}-env"


def container_app_name(service_name: str) -> str:
    return f"{service_name}-app"


@dataclass(frozen=True)
class ResourceNames:
    resource_group_name: str
    template_storage_account_name: str
    template_storage_container_name: str
    key_vault_name: str
    key_vault_identity_name: str
    application_insights_name: str
    application_insights_identity_name: str
    app_insights_secret_name: str
    container_app_environment_name: str
    container_app_name: str


def _explicit_or(value: Optional[str], default: str) -> str:
    return value if value is not None else default


def default_names(config) -> ResourceNames:
    svc = config.service_name
    return ResourceNames(
        resource_group_name=resource_group_name(svc, config.location),
        template_storage_account_name=_explicit_or(
            config.template_storage_account_name, storage_account_name(svc)
        ),
        template_storage_container_name=_explicit_or(
            config.template_storage_container_name, storage_container_name()
        ),
        key_vault_name=_explicit_or(
            config.key_vault_name, key_vault_name(svc, config.deploy_key_vault)
        ),
        key_vault_identity_name=_explicit_or(
            config.key_vault_identity_name,
            key_vault_identity_name(svc, config.deploy_key_vault),
        ),
        application_insights_name=_explicit_or(
            config.application_insights_name,
            application_insights_name(svc, config.deploy_application_insights),
        ),
        application_insights_identity_name=_explicit_or(
            config.application_insights_identity_name,
            application_insights_identity_name(svc, config.deploy_application_insights),
        ),
        app_insights_secret_name=_explicit_or(
            config.app_insights_secret_name,
            app_insights_secret_name(config.deploy_application_insights),
        ),
        container_app_environment_name=_explicit_or(
            config.container_app_environment_name, container_app_environment_name(svc)
        ),
        container_app_name=_explicit_or(
            config.container_app_name, container_app_name(svc)
        ),
    )
