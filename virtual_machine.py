# virtual_machine.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pulumi_azure_native import compute
from pydantic import BaseModel, ConfigDict, Field, field_validator

from resource_id import ResourceIDError, parse_resource_id, validate_resource_id, validation_message

# TODO: determine the public ip from the attached network interfaces
PLACEHOLDER_HOST = "1.2.3.4"

OS_DISK_PROPERTY_PATH = "storageProfile.osDisk"


@dataclass
class VirtualMachineID:
    resource_group: str
    name: str


@dataclass
class VirtualMachineProperties:
    os_profile: Any = None


def parse_virtual_machine_id(input: str) -> VirtualMachineID:
    try:
        id = parse_resource_id(input)
    except ResourceIDError as err:
        raise ResourceIDError(f"Unable to parse Virtual Machine ID {input!r}: {err}") from err

    if not id.resource_group:
        raise ResourceIDError(f"No resource group name found in: {input!r}")

    virtual_machine = VirtualMachineID(
        resource_group=id.resource_group,
        name=id.pop_segment("virtualMachines"),
    )

    id.validate_no_empty_segments(input)

    return virtual_machine


def validate_virtual_machine_id(i: Any, k: str) -> Tuple[List[str], List[Exception]]:
    warnings: List[str] = []
    errors: List[Exception] = []

    if not isinstance(i, str):
        errors.append(ValueError(f"expected type of {k!r} to be string"))
        return warnings, errors

    try:
        parse_virtual_machine_id(i)
    except ResourceIDError as err:
        errors.append(ValueError(f"Can not parse {k!r} as a resource id: {err}"))

    return warnings, errors


def expand_virtual_machine_network_interface_ids(input: List[Any]) -> List[compute.NetworkInterfaceReferenceArgs]:
    return [compute.NetworkInterfaceReferenceArgs(id=v) for v in input]


def flatten_virtual_machine_network_interface_ids(input: Optional[List[Any]]) -> List[str]:
    if input is None:
        return []

    output = []
    for v in input:
        nic_id = getattr(v, "id", None)
        if nic_id is None:
            continue
        output.append(nic_id)
    return output


def _force_new(api_path: str) -> Dict[str, Any]:
    return {"force_new": True, "api_path": api_path}


class DiffDiskSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    option: Literal["Local"] = Field(json_schema_extra=_force_new("diffDiskSettings.option"))


class VirtualMachineOSDisk(BaseModel):
    """The ``os_disk`` block of a virtual machine.

    Mirrors the attribute bag users write in configuration; ``expand`` and
    ``flatten`` below convert it to and from the compute API shape.
    """

    model_config = ConfigDict(extra="forbid")

    caching: Literal["None", "ReadOnly", "ReadWrite"]
    # the API rejects changes to osDisk.managedDisk.storageAccountType even though it's
    # accepted in the update payload. OS disks don't support Ultra SSDs.
    storage_account_type: Literal["Premium_LRS", "Standard_LRS", "StandardSSD_LRS"] = Field(
        json_schema_extra=_force_new("managedDisk.storageAccountType"),
    )

    diff_disk_settings: List[DiffDiskSettings] = Field(
        default_factory=list,
        max_length=1,
        json_schema_extra=_force_new("diffDiskSettings"),
    )
    disk_encryption_set_id: str = ""
    disk_size_gb: int = Field(default=0, ge=0, le=1023)
    name: str = Field(default="", json_schema_extra=_force_new("name"))
    write_accelerator_enabled: bool = False

    @field_validator("disk_encryption_set_id")
    @classmethod
    def _check_disk_encryption_set_id(cls, value: str) -> str:
        if value:
            _, errors = validate_resource_id(value, "disk_encryption_set_id")
            if errors:
                raise ValueError(validation_message(errors))
        return value


def os_disk_replace_on_changes() -> List[str]:
    paths = []
    for field_info in VirtualMachineOSDisk.model_fields.values():
        extra = field_info.json_schema_extra or {}
        if extra.get("force_new"):
            paths.append(f"{OS_DISK_PROPERTY_PATH}.{extra['api_path']}")
    return paths


def expand_virtual_machine_os_disk(input: List[Dict[str, Any]], os_type: str) -> compute.OSDiskArgs:
    if len(input) != 1:
        raise ValueError(f"Expected exactly one os_disk block, got {len(input)}")

    raw = VirtualMachineOSDisk.model_validate(input[0])

    managed_disk = compute.ManagedDiskParametersArgs(
        storage_account_type=compute.StorageAccountTypes(raw.storage_account_type),
        disk_encryption_set=(
            compute.DiskEncryptionSetParametersArgs(id=raw.disk_encryption_set_id)
            if raw.disk_encryption_set_id
            else None
        ),
    )

    diff_disk_settings = None
    if raw.diff_disk_settings:
        diff_disk_settings = compute.DiffDiskSettingsArgs(
            option=compute.DiffDiskOptions(raw.diff_disk_settings[0].option),
        )

    return compute.OSDiskArgs(
        caching=compute.CachingTypes(raw.caching),
        managed_disk=managed_disk,
        write_accelerator_enabled=raw.write_accelerator_enabled,
        # fixed by the resource, so they aren't exposed in the block
        create_option=compute.DiskCreateOptionTypes("FromImage"),
        os_type=compute.OperatingSystemTypes(os_type),
        disk_size_gb=raw.disk_size_gb if raw.disk_size_gb > 0 else None,
        diff_disk_settings=diff_disk_settings,
        name=raw.name or None,
    )


def _enum_value(value: Any) -> str:
    if isinstance(value, Enum):
        return value.value
    return value or ""


def flatten_virtual_machine_os_disk(input: Any) -> List[Dict[str, Any]]:
    if input is None:
        return []

    diff_disk_settings = []
    diff_disk = getattr(input, "diff_disk_settings", None)
    if diff_disk is not None:
        diff_disk_settings.append({"option": _enum_value(getattr(diff_disk, "option", None))})

    disk_encryption_set_id = ""
    storage_account_type = ""
    managed_disk = getattr(input, "managed_disk", None)
    if managed_disk is not None:
        storage_account_type = _enum_value(getattr(managed_disk, "storage_account_type", None))
        disk_encryption_set = getattr(managed_disk, "disk_encryption_set", None)
        if disk_encryption_set is not None and getattr(disk_encryption_set, "id", None) is not None:
            disk_encryption_set_id = disk_encryption_set.id

    return [
        {
            "caching": _enum_value(getattr(input, "caching", None)),
            "disk_size_gb": getattr(input, "disk_size_gb", None) or 0,
            "diff_disk_settings": diff_disk_settings,
            "disk_encryption_set_id": disk_encryption_set_id,
            "name": getattr(input, "name", None) or "",
            "storage_account_type": storage_account_type,
            "write_accelerator_enabled": bool(getattr(input, "write_accelerator_enabled", None)),
        }
    ]


def virtual_machine_connection_information(properties: Any) -> Optional[Dict[str, str]]:
    if properties is None:
        return None

    provisioner_type = "ssh"
    profile = getattr(properties, "os_profile", None)
    if profile is not None and getattr(profile, "windows_configuration", None) is not None:
        provisioner_type = "winrm"

    return {
        "type": provisioner_type,
        "host": PLACEHOLDER_HOST,
    }
