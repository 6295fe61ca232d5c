# azurenative.py
import inspect
import re
from typing import Any, List, Optional, Tuple

import pulumi
import pulumi_azure_native as azure_native

from config import Config
from resource_id import validation_message
from virtual_machine import (
    VirtualMachineProperties,
    expand_virtual_machine_network_interface_ids,
    expand_virtual_machine_os_disk,
    os_disk_replace_on_changes,
    parse_virtual_machine_id,
    validate_virtual_machine_id,
    virtual_machine_connection_information,
)

VIRTUAL_MACHINE_TYPE = "compute.VirtualMachine"

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
    "brazilsoutheast": "brse",
    "northeurope": "ne",
    "westeurope": "we",
    "uksouth": "uks",
    "ukwest": "ukw",
    "francecentral": "frc",
    "francesouth": "frs",
    "germanywestcentral": "gwc",
    "germanynorth": "gn",
    "norwayeast": "nwe",
    "norwaywest": "nww",
    "swedencentral": "swc",
    "switzerlandnorth": "swn",
    "switzerlandwest": "sww",
    "uaenorth": "uaen",
    "uaecentral": "uaec",
    "australiaeast": "aue",
    "australiasoutheast": "ause",
    "australiacentral": "auc",
    "australiacentral2": "auc2",
    "japaneast": "jpe",
    "japanwest": "jpw",
    "koreacentral": "kc",
    "koreasouth": "ks",
    "southeastasia": "sea",
    "eastasia": "ea",
    "southindia": "si",
    "centralindia": "ci",
    "westindia": "wi",
    "southafricanorth": "san",
    "southafricawest": "saw",
    "qatarcentral": "qc",
    "polandcentral": "plc",
    "israelcentral": "ilc",
    "israelnorth": "iln",
}


def to_snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def os_type_for(args: dict) -> str:
    os_profile = args.get("os_profile") or {}
    if isinstance(os_profile, dict) and os_profile.get("windows_configuration") is not None:
        return "Windows"
    return "Linux"


class AzureResourceBuilder:
    def __init__(self, config_data: dict):
        self.settings = Config.from_dict(config_data)
        self.resources = {}
        self.virtual_machines: List[str] = []

    def get_abbreviation(self, location: str) -> str:
        # Unknown locations fall back to their first 3 letters
        return AZURE_LOCATION_ABBREVIATIONS.get(location.lower(), location[:3].lower())

    def generate_resource_name(self, base_name: str) -> str:
        loc_abbr = self.get_abbreviation(self.settings.location)
        parts = [self.settings.team, self.settings.service, self.settings.environment, loc_abbr, base_name]
        return "-".join(parts).lower()

    def resolve_ref(self, ref_text: str) -> Any:
        # "ref:resourceName.attribute", attribute defaults to id
        if "." in ref_text:
            ref_res, ref_attr = ref_text.split(".", 1)
        else:
            ref_res, ref_attr = (ref_text, "id")

        if ref_res not in self.resources:
            raise ValueError(f"Referenced resource '{ref_res}' not found.")

        attr_val = getattr(self.resources[ref_res], ref_attr, None)
        if attr_val is None:
            raise ValueError(f"Attribute '{ref_attr}' not found on resource '{ref_res}'")
        return attr_val

    def resolve_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.resolve_args(value)
        if isinstance(value, list):
            return [self.resolve_value(item) for item in value]
        if isinstance(value, str) and value.startswith("ref:"):
            return self.resolve_ref(value[4:])
        return value

    def resolve_args(self, args: dict) -> dict:
        return {key: self.resolve_value(value) for key, value in args.items()}

    def lookup_virtual_machine_args(self, name: str, args: dict) -> dict:
        """Turn the ``id`` of an existing virtual machine into get_virtual_machine params."""
        vm_id = args.pop("id", None)
        if vm_id is None:
            return args

        _, errors = validate_virtual_machine_id(vm_id, f"{name}.id")
        if errors:
            raise ValueError(validation_message(errors))

        parsed = parse_virtual_machine_id(vm_id)
        args.setdefault("resource_group_name", parsed.resource_group)
        args.setdefault("vm_name", parsed.name)
        return args

    def expand_virtual_machine_args(
        self, name: str, args: dict, os_disk: Any
    ) -> Tuple[dict, Optional[pulumi.ResourceOptions]]:
        opts = None

        if os_disk is not None:
            blocks = [os_disk] if isinstance(os_disk, dict) else list(os_disk)
            storage_profile = dict(args.get("storage_profile") or {})
            storage_profile["os_disk"] = expand_virtual_machine_os_disk(blocks, os_type_for(args))
            args["storage_profile"] = storage_profile
            opts = pulumi.ResourceOptions(replace_on_changes=os_disk_replace_on_changes())
            pulumi.log.debug(f"Expanded os_disk for '{name}' as {os_type_for(args)}")

        nic_ids = args.pop("network_interface_ids", None)
        if nic_ids is not None:
            network_profile = dict(args.get("network_profile") or {})
            network_profile["network_interfaces"] = expand_virtual_machine_network_interface_ids(nic_ids)
            args["network_profile"] = network_profile

        return args, opts

    def apply_defaults(self, init_sig: inspect.Signature, resolved_args: dict) -> dict:
        if "tags" in init_sig.parameters:
            if self.settings.tags:
                resolved_args.setdefault("tags", self.settings.tags)
        else:
            resolved_args.pop("tags", None)

        if "location" in init_sig.parameters:
            resolved_args.setdefault("location", self.settings.location)
        else:
            resolved_args.pop("location", None)

        return resolved_args

    def get_existing(self, name: str, module: Any, class_name: str, resolved_args: dict) -> Optional[Any]:
        get_func_name = f"get_{to_snake_case(class_name)}"
        get_func = getattr(module, get_func_name, None)
        if get_func is None:
            pulumi.log.warn(
                f"Function '{get_func_name}' not found for '{class_name}'. "
                f"Proceeding to create new resource '{name}'."
            )
            return None

        required_params = set(inspect.signature(get_func).parameters.keys()) - {"opts"}
        get_params = {k: v for k, v in resolved_args.items() if k in required_params}

        try:
            existing_resource = get_func(**get_params)
        except Exception as e:
            pulumi.log.warn(
                f"Failed to retrieve existing resource '{name}': {e}. Proceeding with creation."
            )
            return None

        pulumi.log.info(f"Fetched existing resource '{name}' via '{get_func_name}' with {get_params}")
        return existing_resource

    def build(self):
        for resource_cfg in self.settings.azure_resources:
            name = resource_cfg.name
            resource_type = resource_cfg.type
            args = dict(resource_cfg.args)

            is_existing = args.pop("existing", False)
            is_virtual_machine = resource_type == VIRTUAL_MACHINE_TYPE

            # os_disk is mapped from literal values, so it skips ref resolution
            os_disk = args.pop("os_disk", None) if is_virtual_machine else None
            if is_virtual_machine and is_existing:
                args = self.lookup_virtual_machine_args(name, args)

            resolved_args = self.resolve_args(args)

            module_name, class_name = resource_type.rsplit(".", 1)
            module = getattr(azure_native, module_name, None)
            if not module:
                pulumi.log.warn(f"Azure module '{module_name}' not found. Skipping '{name}'.")
                continue

            ResourceClass = getattr(module, class_name, None)
            if ResourceClass is None:
                pulumi.log.warn(
                    f"Resource class '{class_name}' not found in module '{module_name}'. Skipping '{name}'."
                )
                continue

            if is_virtual_machine:
                self.virtual_machines.append(name)

            if is_existing:
                existing_resource = self.get_existing(name, module, class_name, resolved_args)
                if existing_resource is not None:
                    self.resources[name] = existing_resource
                    continue

            opts = None
            if is_virtual_machine:
                resolved_args, opts = self.expand_virtual_machine_args(name, resolved_args, os_disk)

            # __init__ is overloaded on generated resources, _internal_init carries the real params
            init_sig = inspect.signature(getattr(ResourceClass, "_internal_init", ResourceClass.__init__))
            resolved_args = self.apply_defaults(init_sig, resolved_args)

            pulumi_name = self.generate_resource_name(name)
            pulumi.log.debug(f"Final args for '{name}': {resolved_args}")

            self.resources[name] = ResourceClass(pulumi_name, **resolved_args, opts=opts)
            pulumi.log.info(f"Created resource: {pulumi_name} ({resource_type})")

    def connection_information(self, name: str) -> Any:
        resource = self.resources[name]
        if isinstance(resource, pulumi.Resource):
            return resource.os_profile.apply(
                lambda profile: virtual_machine_connection_information(VirtualMachineProperties(os_profile=profile))
            )
        return virtual_machine_connection_information(resource)

    def export(self):
        for name, resource in self.resources.items():
            try:
                pulumi.export(name, resource.id)
            except Exception as e:
                pulumi.log.warn(f"Failed to export resource '{name}': {e}")

        for name in self.virtual_machines:
            if name in self.resources:
                pulumi.export(f"{name}_connection", self.connection_information(name))
