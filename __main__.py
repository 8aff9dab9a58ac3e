# main.py
import pulumi
from azurenative import AzureDeploymentBuilder
from config import load_config


def main():
    # Load YAML configuration
    config_file = pulumi.Config().get("configFile") or "config.yaml"
    try:
        config = load_config(config_file)
    except Exception as e:
        pulumi.log.error(f"Failed to load configuration from '{config_file}': {e}")
        raise

    builder = AzureDeploymentBuilder(config)

    # Build resources
    try:
        builder.build()
    except Exception as e:
        pulumi.log.error(f"Failed during resource build: {e}")
        raise

    # Export the service endpoint and the resource group used
    for name, value in builder.outputs.items():
        pulumi.export(name, value)


if __name__ == "__main__":
    main()
