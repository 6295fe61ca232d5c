# config.py
"""
Configuration for the resource builder and the acceptance harness.

`load_config` reads the YAML resource definitions, `Config` is the typed view of
that file, and `AcceptanceSettings` collects the environment the acceptance
tests need to talk to a real subscription.
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

REQUIRED_KEYS = ["team", "service", "environment", "location"]

ACCEPTANCE_ENV_VARS = [
    "ARM_CLIENT_ID",
    "ARM_CLIENT_SECRET",
    "ARM_SUBSCRIPTION_ID",
    "ARM_TENANT_ID",
    "ARM_TEST_LOCATION",
    "ARM_TEST_LOCATION_ALT",
]


def parse_config(text: str) -> Dict[str, Any]:
    """Parse and validate YAML configuration text."""
    config_data = yaml.safe_load(text)
    if not isinstance(config_data, dict):
        raise ValueError("Configuration must be a YAML mapping")

    # Ensure required keys exist
    for key in REQUIRED_KEYS:
        if key not in config_data:
            raise ValueError(f"Missing required configuration key: {key}")

    return config_data


def load_config(file_path: str) -> Dict[str, Any]:
    """Load and validate YAML configuration from the given file path."""
    with open(file_path, "r") as file:
        return parse_config(file.read())


@dataclass
class AzureResource:
    name: str
    type: str
    args: Dict = field(default_factory=dict)


@dataclass
class Config:
    team: str
    service: str
    environment: str
    location: str
    tags: Dict[str, str] = field(default_factory=dict)
    azure_resources: List[AzureResource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        return cls(
            team=data["team"],
            service=data["service"],
            environment=data["environment"],
            location=data["location"],
            tags=data.get("tags") or {},
            azure_resources=[
                AzureResource(name=r["name"], type=r["type"], args=r.get("args") or {})
                for r in data.get("azure_resources", [])
            ],
        )


@dataclass
class AcceptanceSettings:
    enabled: bool
    subscription_id: Optional[str]
    client_id: Optional[str]
    client_secret: Optional[str]
    tenant_id: Optional[str]
    location: Optional[str]
    alt_location: Optional[str]
    missing: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AcceptanceSettings":
        env = os.environ if environ is None else environ
        return cls(
            enabled=bool(env.get("ARM_ACC")),
            subscription_id=env.get("ARM_SUBSCRIPTION_ID"),
            client_id=env.get("ARM_CLIENT_ID"),
            client_secret=env.get("ARM_CLIENT_SECRET"),
            tenant_id=env.get("ARM_TENANT_ID"),
            location=env.get("ARM_TEST_LOCATION"),
            alt_location=env.get("ARM_TEST_LOCATION_ALT"),
            missing=[name for name in ACCEPTANCE_ENV_VARS if not env.get(name)],
        )
