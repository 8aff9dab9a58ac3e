import pulumi
from pulumi_azure_native import (
    app,
    applicationinsights,
    authorization,
    keyvault,
    managedidentity,
    operationalinsights,
)
from typing import Dict, Optional

from dependent_resources import KEY_VAULT_SECRETS_USER_ROLE_ID, role_assignment_name, role_definition_id
from resolver import InfrastructureOutputs


def key_vault_id(
    subscription_id: pulumi.Input[str],
    resource_group_name: pulumi.Input[str],
    vault_name: str,
) -> pulumi.Output[str]:
    return pulumi.Output.concat(
        "/subscriptions/", subscription_id,
        "/resourceGroups/", resource_group_name,
        "/providers/Microsoft.KeyVault/vaults/", vault_name,
    )


class Infrastructure(pulumi.ComponentResource):
    """Container Apps environment and, optionally, Application Insights.

    When Application Insights is deployed and a key vault name is known, the
    connection string is stored as a secret in that vault and the insights
    identity is allowed to read it. The vault itself is referenced by name
    only.
    """

    def __init__(
        self,
        name: str,
        resource_group_name: pulumi.Input[str],
        location: str,
        env_name: str,
        deploy_application_insights: bool,
        application_insights_name: str,
        application_insights_identity_name: str,
        app_insights_secret_name: str,
        key_vault_name: str,
        tags: Optional[Dict[str, str]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("servicedeploy:azure:Infrastructure", name, None, opts)
        child_opts = pulumi.ResourceOptions(parent=self)
        tags = tags or {}

        self.workspace = operationalinsights.Workspace(
            f"{name}-logs",
            workspace_name=f"{env_name}-logs",
            resource_group_name=resource_group_name,
            location=location,
            sku=operationalinsights.WorkspaceSkuArgs(name="PerGB2018"),
            retention_in_days=30,
            tags=tags,
            opts=child_opts,
        )
        shared_keys = operationalinsights.get_shared_keys_output(
            resource_group_name=resource_group_name,
            workspace_name=self.workspace.name,
        )
        self.environment = app.ManagedEnvironment(
            f"{name}-env",
            environment_name=env_name,
            resource_group_name=resource_group_name,
            location=location,
            app_logs_configuration=app.AppLogsConfigurationArgs(
                destination="log-analytics",
                log_analytics_configuration=app.LogAnalyticsConfigurationArgs(
                    customer_id=self.workspace.customer_id,
                    shared_key=shared_keys.primary_shared_key,
                ),
            ),
            zone_redundant=False,
            tags=tags,
            opts=child_opts,
        )
        pulumi.log.info(f"Declared container app environment '{env_name}'")

        self.application_insights = None
        self.application_insights_identity = None
        self.connection_string_secret = None

        insights_name_out: pulumi.Input[str] = ""
        identity_name_out: pulumi.Input[str] = ""
        secret_name_out: pulumi.Input[str] = ""
        if deploy_application_insights:
            self.application_insights = applicationinsights.Component(
                f"{name}-app-insights",
                resource_name_=application_insights_name,
                resource_group_name=resource_group_name,
                location=location,
                kind="web",
                application_type="web",
                workspace_resource_id=self.workspace.id,
                tags=tags,
                opts=child_opts,
            )
            self.application_insights_identity = managedidentity.UserAssignedIdentity(
                f"{name}-app-insights-uami",
                resource_name_=application_insights_identity_name,
                resource_group_name=resource_group_name,
                location=location,
                tags=tags,
                opts=child_opts,
            )
            insights_name_out = self.application_insights.id.apply(lambda _: application_insights_name)
            identity_name_out = self.application_insights_identity.id.apply(
                lambda _: application_insights_identity_name
            )

            if key_vault_name:
                # The vault is referenced by name only, without a dependency on the
                # vault created by the dependent-resources step. On a first deploy
                # with both flags set the secret may be written before the vault
                # exists; the next `pulumi up` converges.
                client_config = authorization.get_client_config_output()
                self.connection_string_secret = keyvault.Secret(
                    f"{name}-app-insights-secret",
                    vault_name=key_vault_name,
                    secret_name=app_insights_secret_name,
                    resource_group_name=resource_group_name,
                    properties=keyvault.SecretPropertiesArgs(
                        value=self.application_insights.connection_string,
                    ),
                    opts=child_opts,
                )
                authorization.RoleAssignment(
                    f"{name}-app-insights-secrets-user",
                    principal_id=self.application_insights_identity.principal_id,
                    principal_type="ServicePrincipal",
                    role_definition_id=role_definition_id(
                        client_config.subscription_id, KEY_VAULT_SECRETS_USER_ROLE_ID
                    ),
                    scope=key_vault_id(client_config.subscription_id, resource_group_name, key_vault_name),
                    role_assignment_name=role_assignment_name(
                        key_vault_name, application_insights_identity_name, KEY_VAULT_SECRETS_USER_ROLE_ID
                    ),
                    opts=child_opts,
                )
                secret_name_out = self.connection_string_secret.id.apply(lambda _: app_insights_secret_name)
            else:
                pulumi.log.warn(
                    f"No key vault configured; the connection string of '{application_insights_name}' "
                    "is not stored as a secret"
                )
            pulumi.log.info(f"Declared application insights '{application_insights_name}'")

        self.outputs = InfrastructureOutputs(
            container_app_environment_name=self.environment.id.apply(lambda _: env_name),
            container_app_environment_id=self.environment.id,
            application_insights_name=insights_name_out,
            application_insights_identity_name=identity_name_out,
            app_insights_secret_name=secret_name_out,
        )
        self.register_outputs({
            "containerAppEnvironmentName": self.outputs.container_app_environment_name,
            "containerAppEnvironmentId": self.outputs.container_app_environment_id,
            "applicationInsightsName": insights_name_out,
            "applicationInsightsUAMIName": identity_name_out,
            "appInsightsConnStringSecretName": secret_name_out,
        })
