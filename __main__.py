# __main__.py
import pulumi
from azurenative import AzureResourceBuilder
from config import load_config


def main():
    config_data = load_config("config.yaml")

    try:
        builder = AzureResourceBuilder(config_data)
    except Exception as e:
        pulumi.log.error(f"Failed to initialize AzureResourceBuilder: {e}")
        raise

    try:
        builder.build()
    except Exception as e:
        pulumi.log.error(f"Failed during resource build: {e}")
        raise

    builder.export()


if __name__ == "__main__":
    main()
