import pulumi
import pulumi_azure_native as azure_native
from concurrent.futures import Executor
from typing import Any, Dict, Optional

from config import DeploymentConfig
from dependent_resources import DependentResources
from infrastructure import Infrastructure
from naming import ResourceNames, default_names
from resolver import (
    dependent_resources_enabled,
    dependent_resources_inputs,
    infrastructure_inputs,
    resolve_service_parameters,
)
from scheduler import DeploymentPlan, Step
from service import ServiceApp

DEPENDENT_RESOURCES_STEP = "dependent-resources"
INFRASTRUCTURE_STEP = "infrastructure"
SERVICE_STEP = "service"


class AzureDeploymentBuilder:
    def __init__(self, config: DeploymentConfig):
        self.config = config
        self.names: ResourceNames = default_names(config)
        self.resources: Dict[str, Any] = {}
        self.outputs: Dict[str, Any] = {}
        self.resource_group = None

    def _tags(self) -> Dict[str, str]:
        tags = {"service": self.config.service_name}
        tags.update(self.config.tags)
        return tags

    def deploy_dependent_resources(self, inputs: Dict[str, Any]) -> DependentResources:
        component = DependentResources(
            f"{self.config.service_name}-dependent",
            resource_group_name=self.resource_group.name,
            tags=self._tags(),
            **dependent_resources_inputs(self.config, self.names),
        )
        self.resources[DEPENDENT_RESOURCES_STEP] = component
        return component

    def deploy_infrastructure(self, inputs: Dict[str, Any]) -> Infrastructure:
        component = Infrastructure(
            f"{self.config.service_name}-infra",
            resource_group_name=self.resource_group.name,
            tags=self._tags(),
            **infrastructure_inputs(self.config, self.names),
        )
        self.resources[INFRASTRUCTURE_STEP] = component
        return component

    def deploy_service(self, inputs: Dict[str, Any]) -> ServiceApp:
        dependent: Optional[DependentResources] = inputs.get(DEPENDENT_RESOURCES_STEP)
        infrastructure: Infrastructure = inputs[INFRASTRUCTURE_STEP]

        params = resolve_service_parameters(
            self.config,
            self.names,
            dependent.outputs if dependent is not None else None,
            infrastructure.outputs,
        )
        params.tags = self._tags()

        # Mirror the plan's ordering on the engine side
        depends_on = [c for c in (dependent, infrastructure) if c is not None]
        component = ServiceApp(
            f"{self.config.service_name}-service",
            resource_group_name=self.resource_group.name,
            resource_group_id=self.resource_group.id,
            params=params,
            opts=pulumi.ResourceOptions(depends_on=depends_on),
        )
        self.resources[SERVICE_STEP] = component
        return component

    def create_plan(self) -> DeploymentPlan:
        plan = DeploymentPlan()
        plan.add_step(Step(
            name=DEPENDENT_RESOURCES_STEP,
            action=self.deploy_dependent_resources,
            enabled=dependent_resources_enabled(self.config.flags),
        ))
        plan.add_step(Step(name=INFRASTRUCTURE_STEP, action=self.deploy_infrastructure))
        plan.add_step(Step(
            name=SERVICE_STEP,
            action=self.deploy_service,
            depends_on=[DEPENDENT_RESOURCES_STEP, INFRASTRUCTURE_STEP],
        ))
        return plan

    def build(self, executor: Optional[Executor] = None):
        self.resource_group = azure_native.resources.ResourceGroup(
            self.names.resource_group_name,
            resource_group_name=self.names.resource_group_name,
            location=self.config.location,
            tags=self._tags(),
        )
        self.resources["resource-group"] = self.resource_group
        pulumi.log.info(f"Created resource: {self.names.resource_group_name} (resources.ResourceGroup)")

        plan = self.create_plan()
        plan.execute(executor)

        service = self.resources[SERVICE_STEP]
        self.outputs = {
            "containerAppFQDN": service.container_app_fqdn,
            "resourceGroupName": self.resource_group.name,
            "resourceGroupId": self.resource_group.id,
        }
        return self.outputs
