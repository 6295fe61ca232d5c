import pytest

from resource_id import ResourceID, ResourceIDError, parse_resource_id, validate_resource_id

from conftest import VM_ID


def test_parse_lifts_well_known_segments():
    id = parse_resource_id(VM_ID)

    assert id.subscription_id == "00000000-0000-0000-0000-000000000000"
    assert id.resource_group == "acctestRG-1"
    assert id.provider == "Microsoft.Compute"
    assert id.path == {"virtualMachines": "acctestvm-1"}


def test_parse_accepts_lowercase_resource_groups_and_trailing_slash():
    id = parse_resource_id("/subscriptions/123/resourcegroups/rg1/")

    assert id.resource_group == "rg1"
    assert id.path == {}


def test_parse_accepts_full_urls():
    id = parse_resource_id("https://management.azure.com" + VM_ID)

    assert id.path == {"virtualMachines": "acctestvm-1"}


def test_parse_keeps_nested_provider_separate():
    id = parse_resource_id(
        VM_ID + "/providers/Microsoft.Authorization/locks/lock1"
    )

    assert id.provider == "Microsoft.Compute"
    assert id.secondary_provider == "Microsoft.Authorization"
    assert id.path == {"virtualMachines": "acctestvm-1", "locks": "lock1"}


@pytest.mark.parametrize(
    "input, message",
    [
        ("", "Cannot parse Azure ID"),
        ("subscriptions/123/resourceGroups/rg1", "not an absolute path"),
        ("/subscriptions/123/resourceGroups", "not divisible by 2"),
        ("/subscriptions/123/resourceGroups//providers/Microsoft.Compute", "cannot be empty"),
        ("/resourceGroups/rg1", "No subscription ID found"),
    ],
)
def test_parse_rejects_malformed_ids(input, message):
    with pytest.raises(ResourceIDError, match=message):
        parse_resource_id(input)


def test_pop_segment():
    id = parse_resource_id(VM_ID)

    assert id.pop_segment("virtualMachines") == "acctestvm-1"
    assert id.path == {}

    with pytest.raises(ResourceIDError, match="missing the `virtualMachines` element"):
        id.pop_segment("virtualMachines")


def test_validate_no_empty_segments():
    id = parse_resource_id(VM_ID)
    with pytest.raises(ResourceIDError, match="more segments than required"):
        id.validate_no_empty_segments(VM_ID)

    id.pop_segment("virtualMachines")
    id.validate_no_empty_segments(VM_ID)


def test_validate_no_empty_segments_rejects_empty_values():
    id = ResourceID(subscription_id="123", resource_group="rg1", path={"virtualMachines": ""})

    with pytest.raises(ResourceIDError, match="empty segments"):
        id.validate_no_empty_segments("/subscriptions/123/resourceGroups/rg1/virtualMachines/")


def test_validate_resource_id():
    assert validate_resource_id(VM_ID, "id") == ([], [])

    warnings, errors = validate_resource_id("not-an-id", "id")
    assert warnings == []
    assert len(errors) == 1
    assert "Can not parse 'id' as a resource id" in str(errors[0])

    _, errors = validate_resource_id(42, "id")
    assert "expected type of 'id' to be string" in str(errors[0])


def test_parse_keeps_first_subscription():
    id = parse_resource_id("/subscriptions/123/resourceGroups/rg1/subscriptions/456")

    assert id.subscription_id == "123"
    assert id.path == {}
