import pulumi
from pulumi_azure_native import app
from typing import Any, List, Optional

from resolver import ServiceParameters

CONNECTION_STRING_SECRET_REF = "appinsights-connection-string"


def is_set(value: Any) -> bool:
    # Module outputs are only known at deploy time; treat them as present
    return isinstance(value, pulumi.Output) or bool(value)


def identity_id(resource_group_id: pulumi.Input[str], identity_name: pulumi.Input[str]) -> pulumi.Output[str]:
    return pulumi.Output.concat(
        resource_group_id, "/providers/Microsoft.ManagedIdentity/userAssignedIdentities/", identity_name
    )


def key_vault_secret_url(vault_name: pulumi.Input[str], secret_name: pulumi.Input[str]) -> pulumi.Output[str]:
    return pulumi.Output.concat("https://", vault_name, ".vault.azure.net/secrets/", secret_name)


def ingress_fqdn(configuration) -> str:
    if configuration is None or configuration.ingress is None:
        return ""
    return configuration.ingress.fqdn or ""


class ServiceApp(pulumi.ComponentResource):
    """The container app running the service image."""

    def __init__(
        self,
        name: str,
        resource_group_name: pulumi.Input[str],
        resource_group_id: pulumi.Input[str],
        params: ServiceParameters,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("servicedeploy:azure:ServiceApp", name, None, opts)
        child_opts = pulumi.ResourceOptions(parent=self)
        self.params = params

        env: List[app.EnvironmentVarArgs] = [
            app.EnvironmentVarArgs(name="SECURITY_ENABLED", value=str(params.security_enabled).lower()),
        ]
        secrets: List[app.SecretArgs] = []
        identities: List[pulumi.Input[str]] = []

        if is_set(params.key_vault_identity_name):
            identities.append(identity_id(resource_group_id, params.key_vault_identity_name))

        if params.use_custom_templates:
            env.append(app.EnvironmentVarArgs(
                name="TEMPLATE_STORAGE_ACCOUNT", value=params.template_storage_account_name,
            ))
            env.append(app.EnvironmentVarArgs(
                name="TEMPLATE_STORAGE_CONTAINER", value=params.template_storage_container_name,
            ))

        self.connection_string_wired = (
            params.use_application_insights
            and is_set(params.key_vault_name)
            and is_set(params.app_insights_secret_name)
            and is_set(params.application_insights_identity_name)
        )
        if self.connection_string_wired:
            insights_identity = identity_id(resource_group_id, params.application_insights_identity_name)
            identities.append(insights_identity)
            secrets.append(app.SecretArgs(
                name=CONNECTION_STRING_SECRET_REF,
                key_vault_url=key_vault_secret_url(params.key_vault_name, params.app_insights_secret_name),
                identity=insights_identity,
            ))
            env.append(app.EnvironmentVarArgs(
                name="APPLICATIONINSIGHTS_CONNECTION_STRING", secret_ref=CONNECTION_STRING_SECRET_REF,
            ))
        elif params.use_application_insights:
            pulumi.log.warn(
                f"'{params.container_app_name}' asked for application insights but no key vault "
                "secret is available; the connection string is not wired"
            )

        ip_restrictions = None
        if params.security_enabled and params.allowed_ip_ranges:
            ip_restrictions = [
                app.IpSecurityRestrictionRuleArgs(name=f"allow-{i}", ip_address_range=ip_range, action="Allow")
                for i, ip_range in enumerate(params.allowed_ip_ranges)
            ]

        self.container_app = app.ContainerApp(
            f"{name}-app",
            container_app_name=params.container_app_name,
            resource_group_name=resource_group_name,
            location=params.location,
            managed_environment_id=params.container_app_environment_id,
            identity=app.ManagedServiceIdentityArgs(
                type="UserAssigned",
                user_assigned_identities=identities,
            ) if identities else None,
            configuration=app.ConfigurationArgs(
                ingress=app.IngressArgs(
                    external=True,
                    target_port=params.target_port,
                    transport="auto",
                    allow_insecure=not params.security_enabled,
                    ip_security_restrictions=ip_restrictions,
                    traffic=[app.TrafficWeightArgs(latest_revision=True, weight=100)],
                ),
                secrets=secrets or None,
            ),
            template=app.TemplateArgs(
                containers=[
                    app.ContainerArgs(
                        name=params.container_app_name,
                        image=params.image,
                        resources=app.ContainerResourcesArgs(cpu=params.cpu, memory=params.memory),
                        env=env,
                    )
                ],
                scale=app.ScaleArgs(
                    min_replicas=params.min_replicas,
                    max_replicas=params.max_replicas,
                ),
            ),
            tags=params.tags,
            opts=child_opts,
        )
        pulumi.log.info(f"Declared container app '{params.container_app_name}' running '{params.image}'")

        self.container_app_fqdn = self.container_app.configuration.apply(ingress_fqdn)
        self.register_outputs({"containerAppFQDN": self.container_app_fqdn})
