import itertools

import pytest

from config import FeatureFlags
from naming import default_names
from resolver import (
    DependentResourcesOutputs,
    InfrastructureOutputs,
    SERVICE_IMAGE_REPOSITORY,
    dependent_resources_enabled,
    dependent_resources_inputs,
    infrastructure_inputs,
    resolve,
    resolve_service_parameters,
)


def produced_dependent():
    return DependentResourcesOutputs(
        template_storage_account_name="produced-account",
        template_storage_container_name="produced-container",
        key_vault_name="produced-kv",
        key_vault_identity_name="produced-kv-uami",
    )


def produced_infrastructure():
    return InfrastructureOutputs(
        container_app_environment_name="produced-env",
        container_app_environment_id="/envs/produced-env",
        application_insights_name="produced-ai",
        application_insights_identity_name="produced-ai-uami",
        app_insights_secret_name="produced-secret",
    )


@pytest.mark.parametrize("flag", [True, False])
def test_resolve_picks_produced_only_when_flag_set(flag):
    assert resolve(flag, "produced", "supplied") == ("produced" if flag else "supplied")


def test_resolve_passes_through_empty_and_none_values():
    assert resolve(True, None, "supplied") is None
    assert resolve(False, "produced", "") == ""


@pytest.mark.parametrize(
    "deploy_template_store, deploy_key_vault, expected",
    [(False, False, False), (True, False, True), (False, True, True), (True, True, True)],
)
def test_dependent_resources_gate(deploy_template_store, deploy_key_vault, expected):
    flags = FeatureFlags(deploy_template_store=deploy_template_store, deploy_key_vault=deploy_key_vault)
    assert dependent_resources_enabled(flags) is expected


def test_gate_ignores_application_insights_flags():
    flags = FeatureFlags(deploy_application_insights=True, use_application_insights=True)
    assert dependent_resources_enabled(flags) is False


def test_step_input_contracts(make_config):
    config = make_config(deploy_key_vault=True, deploy_application_insights=True)
    names = default_names(config)

    assert dependent_resources_inputs(config, names) == {
        "location": "eastus",
        "deploy_template_store": False,
        "template_storage_account_name": "fc1storageaccount",
        "template_storage_container_name": "templates",
        "deploy_key_vault": True,
        "key_vault_name": "fc1-kv",
        "key_vault_identity_name": "fc1-kv-uami",
    }
    infra = infrastructure_inputs(config, names)
    assert infra["env_name"] == "fc1-env"
    assert infra["application_insights_name"] == "fc1-app-insights"
    assert infra["key_vault_name"] == "fc1-kv"


def test_all_flags_false_passes_supplied_names_unmodified(make_config):
    config = make_config(
        template_storage_account_name="existingaccount",
        key_vault_name="existing-kv",
    )
    names = default_names(config)

    params = resolve_service_parameters(config, names, None, produced_infrastructure())

    assert params.template_storage_account_name == "existingaccount"
    assert params.template_storage_container_name == "templates"
    assert params.key_vault_name == "existing-kv"
    assert params.key_vault_identity_name == ""
    assert params.application_insights_name == ""
    assert params.application_insights_identity_name == ""
    assert params.app_insights_secret_name == ""
    assert params.container_app_environment_id == "/envs/produced-env"


@pytest.mark.parametrize(
    "store, key_vault, insights",
    list(itertools.product([True, False], repeat=3)),
)
def test_each_role_follows_its_own_flag(make_config, store, key_vault, insights):
    config = make_config(
        deploy_template_store=store,
        deploy_key_vault=key_vault,
        deploy_application_insights=insights,
    )
    names = default_names(config)
    dependent = produced_dependent() if store or key_vault else None

    params = resolve_service_parameters(config, names, dependent, produced_infrastructure())

    assert params.template_storage_account_name == (
        "produced-account" if store else names.template_storage_account_name
    )
    assert params.template_storage_container_name == (
        "produced-container" if store else names.template_storage_container_name
    )
    assert params.key_vault_name == ("produced-kv" if key_vault else names.key_vault_name)
    assert params.key_vault_identity_name == (
        "produced-kv-uami" if key_vault else names.key_vault_identity_name
    )
    assert params.application_insights_name == ("produced-ai" if insights else names.application_insights_name)
    assert params.app_insights_secret_name == (
        "produced-secret" if insights else names.app_insights_secret_name
    )


def test_end_to_end_names_for_fc1(make_config):
    config = make_config(deploy_key_vault=True, deploy_application_insights=True, deploy_template_store=False)
    names = default_names(config)
    dependent = DependentResourcesOutputs(
        template_storage_account_name="",
        template_storage_container_name="",
        key_vault_name=names.key_vault_name,
        key_vault_identity_name=names.key_vault_identity_name,
    )
    infrastructure = InfrastructureOutputs(
        container_app_environment_name="fc1-env",
        container_app_environment_id="/envs/fc1-env",
        application_insights_name=names.application_insights_name,
        application_insights_identity_name=names.application_insights_identity_name,
        app_insights_secret_name=names.app_insights_secret_name,
    )

    params = resolve_service_parameters(config, names, dependent, infrastructure)

    assert params.key_vault_name == "fc1-kv"
    assert params.application_insights_name == "fc1-app-insights"
    # Store not deployed: the module's empty output is ignored
    assert params.template_storage_account_name == "fc1storageaccount"
    assert params.container_app_name == "fc1-app"


def test_use_custom_templates_without_store_falls_back_silently(make_config):
    config = make_config(use_custom_templates=True, deploy_template_store=False)
    names = default_names(config)

    params = resolve_service_parameters(config, names, None, produced_infrastructure())

    assert params.use_custom_templates
    assert params.template_storage_container_name == "templates"


def test_service_settings_are_copied(make_config, pulumi_logs):
    config = make_config(
        image_tag="1.2.3",
        min_replicas=0,
        max_replicas=5,
        security_enabled=True,
        allowed_ip_ranges=["10.0.0.0/8"],
        tags={"team": "platform"},
    )

    params = resolve_service_parameters(config, default_names(config), None, produced_infrastructure())

    assert params.image == f"{SERVICE_IMAGE_REPOSITORY}:1.2.3"
    assert (params.min_replicas, params.max_replicas) == (0, 5)
    assert params.security_enabled
    assert params.allowed_ip_ranges == ["10.0.0.0/8"]
    assert params.tags == {"team": "platform"}
    assert any("key_vault_name" in msg for msg in pulumi_logs["debug"])
