import uuid
import pulumi
from pulumi_azure_native import authorization, keyvault, managedidentity, storage
from typing import Dict, Optional

from resolver import DependentResourcesOutputs

# Built-in "Key Vault Secrets User" role
KEY_VAULT_SECRETS_USER_ROLE_ID = "4633458b-17de-408a-b874-0445c86b69e6"


def role_definition_id(subscription_id: pulumi.Input[str], role_id: str) -> pulumi.Output[str]:
    return pulumi.Output.concat(
        "/subscriptions/", subscription_id,
        "/providers/Microsoft.Authorization/roleDefinitions/", role_id,
    )


def role_assignment_name(*parts: str) -> str:
    # Role assignment names must be GUIDs; derive a stable one per scope/principal
    return str(uuid.uuid5(uuid.NAMESPACE_URL, "/".join(parts)))


class DependentResources(pulumi.ComponentResource):
    """Template storage and key vault the service relies on.

    Each sub-resource is only created when its flag is set; the outputs of
    skipped sub-resources are empty strings.
    """

    def __init__(
        self,
        name: str,
        resource_group_name: pulumi.Input[str],
        location: str,
        deploy_template_store: bool,
        template_storage_account_name: str,
        template_storage_container_name: str,
        deploy_key_vault: bool,
        key_vault_name: str,
        key_vault_identity_name: str,
        tags: Optional[Dict[str, str]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("servicedeploy:azure:DependentResources", name, None, opts)
        child_opts = pulumi.ResourceOptions(parent=self)
        tags = tags or {}

        self.storage_account = None
        self.storage_container = None
        self.key_vault = None
        self.key_vault_identity = None

        account_name_out: pulumi.Input[str] = ""
        container_name_out: pulumi.Input[str] = ""
        if deploy_template_store:
            self.storage_account = storage.StorageAccount(
                f"{name}-storage",
                account_name=template_storage_account_name,
                resource_group_name=resource_group_name,
                location=location,
                sku=storage.SkuArgs(name=storage.SkuName.STANDARD_LRS),
                kind=storage.Kind.STORAGE_V2,
                minimum_tls_version=storage.MinimumTlsVersion.TLS1_2,
                allow_blob_public_access=False,
                enable_https_traffic_only=True,
                tags=tags,
                opts=child_opts,
            )
            self.storage_container = storage.BlobContainer(
                f"{name}-templates",
                account_name=self.storage_account.name,
                container_name=template_storage_container_name,
                resource_group_name=resource_group_name,
                public_access=storage.PublicAccess.NONE,
                opts=child_opts,
            )
            account_name_out = self.storage_account.id.apply(lambda _: template_storage_account_name)
            container_name_out = self.storage_container.id.apply(lambda _: template_storage_container_name)
            pulumi.log.info(f"Declared template store '{template_storage_account_name}/{template_storage_container_name}'")

        vault_name_out: pulumi.Input[str] = ""
        identity_name_out: pulumi.Input[str] = ""
        if deploy_key_vault:
            client_config = authorization.get_client_config_output()
            self.key_vault = keyvault.Vault(
                f"{name}-kv",
                vault_name=key_vault_name,
                resource_group_name=resource_group_name,
                location=location,
                properties=keyvault.VaultPropertiesArgs(
                    tenant_id=client_config.tenant_id,
                    enable_rbac_authorization=True,
                    sku=keyvault.SkuArgs(name=keyvault.SkuName.STANDARD, family="A"),
                ),
                tags=tags,
                opts=child_opts,
            )
            self.key_vault_identity = managedidentity.UserAssignedIdentity(
                f"{name}-kv-uami",
                resource_name_=key_vault_identity_name,
                resource_group_name=resource_group_name,
                location=location,
                tags=tags,
                opts=child_opts,
            )
            authorization.RoleAssignment(
                f"{name}-kv-secrets-user",
                principal_id=self.key_vault_identity.principal_id,
                principal_type="ServicePrincipal",
                role_definition_id=role_definition_id(
                    client_config.subscription_id, KEY_VAULT_SECRETS_USER_ROLE_ID
                ),
                scope=self.key_vault.id,
                role_assignment_name=role_assignment_name(
                    key_vault_name, key_vault_identity_name, KEY_VAULT_SECRETS_USER_ROLE_ID
                ),
                opts=child_opts,
            )
            vault_name_out = self.key_vault.id.apply(lambda _: key_vault_name)
            identity_name_out = self.key_vault_identity.id.apply(lambda _: key_vault_identity_name)
            pulumi.log.info(f"Declared key vault '{key_vault_name}' with identity '{key_vault_identity_name}'")

        self.outputs = DependentResourcesOutputs(
            template_storage_account_name=account_name_out,
            template_storage_container_name=container_name_out,
            key_vault_name=vault_name_out,
            key_vault_identity_name=identity_name_out,
        )
        self.register_outputs({
            "templateStorageAccountName": account_name_out,
            "templateStorageAccountContainerName": container_name_out,
            "keyVaultName": vault_name_out,
            "keyVaultUAMIName": identity_name_out,
        })
