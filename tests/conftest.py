import os

import pytest

VM_ID = (
    "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/acctestRG-1"
    "/providers/Microsoft.Compute/virtualMachines/acctestvm-1"
)

DISK_ENCRYPTION_SET_ID = (
    "/subscriptions/00000000-0000-0000-0000-000000000000/resourceGroups/acctestRG-1"
    "/providers/Microsoft.Compute/diskEncryptionSets/acctestdes-1"
)


def pytest_collection_modifyitems(config, items):
    if os.environ.get("ARM_ACC"):
        return

    skip = pytest.mark.skip(reason="acceptance tests only run when ARM_ACC is set")
    for item in items:
        if "acceptance" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def os_disk_bag():
    """A fully populated os_disk block as a user would write it."""
    return {
        "caching": "ReadWrite",
        "storage_account_type": "Premium_LRS",
        "diff_disk_settings": [{"option": "Local"}],
        "disk_encryption_set_id": DISK_ENCRYPTION_SET_ID,
        "disk_size_gb": 64,
        "name": "acctestosdisk-1",
        "write_accelerator_enabled": True,
    }
