import pytest

from config import ACCEPTANCE_ENV_VARS, AcceptanceSettings, Config, load_config, parse_config

CONFIG_TEXT = """
team: Platform
service: vm
environment: dev
location: westeurope
tags:
  owner: platform
azure_resources:
  - name: rg
    type: resources.ResourceGroup
    args:
      resource_group_name: platform-rg
"""


def test_load_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_TEXT)

    config_data = load_config(str(path))

    assert config_data["team"] == "Platform"
    assert config_data["azure_resources"][0]["type"] == "resources.ResourceGroup"


def test_parse_config_requires_keys():
    with pytest.raises(ValueError, match="Missing required configuration key: location"):
        parse_config("team: a\nservice: b\nenvironment: c\n")


def test_parse_config_requires_mapping():
    with pytest.raises(ValueError, match="YAML mapping"):
        parse_config("- just\n- a list\n")


def test_config_from_dict():
    config = Config.from_dict(parse_config(CONFIG_TEXT))

    assert config.location == "westeurope"
    assert config.tags == {"owner": "platform"}
    assert config.azure_resources[0].name == "rg"
    assert config.azure_resources[0].args == {"resource_group_name": "platform-rg"}


def test_config_from_dict_defaults():
    config = Config.from_dict({"team": "a", "service": "b", "environment": "c", "location": "d"})

    assert config.tags == {}
    assert config.azure_resources == []


def test_acceptance_settings_from_env():
    env = {name: "x" for name in ACCEPTANCE_ENV_VARS}
    env["ARM_ACC"] = "1"
    env["ARM_TEST_LOCATION"] = "westeurope"

    settings = AcceptanceSettings.from_env(env)

    assert settings.enabled
    assert settings.location == "westeurope"
    assert settings.missing == []


def test_acceptance_settings_reports_missing():
    settings = AcceptanceSettings.from_env({"ARM_SUBSCRIPTION_ID": "123"})

    assert not settings.enabled
    assert "ARM_SUBSCRIPTION_ID" not in settings.missing
    assert "ARM_CLIENT_SECRET" in settings.missing
