# acceptance.py
"""
Acceptance test harness.

A test case applies one or more YAML resource definitions to a throwaway
Pulumi stack in a real subscription, runs checks against the live Azure API,
and always tears the stack down again. Tests only run when ``ARM_ACC`` is set.
"""

import random
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pulumi
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.identity import ClientSecretCredential
from azure.mgmt.resource import ResourceManagementClient
from pulumi import automation as auto

from azurenative import AzureResourceBuilder
from config import AcceptanceSettings, parse_config
from resource_id import ResourceIDError, parse_resource_id

PROJECT_NAME = "azurerm-acctest"

CheckFunc = Callable[["State", ResourceManagementClient], None]


class AcceptanceError(AssertionError):
    pass


def pre_check(settings: AcceptanceSettings) -> None:
    if settings.missing:
        raise AcceptanceError(
            "The following environment variables must be set for acceptance tests: "
            + ", ".join(settings.missing)
        )


def rand_time_int() -> int:
    now = datetime.now()
    time_str = now.strftime("%y%m%d%H%M%S") + f"{now.microsecond // 10000:02d}"
    return int(time_str + "".join(random.choice(string.digits) for _ in range(4)))


class State:
    """Stack outputs keyed by the logical names used in the resource definitions."""

    def __init__(self, outputs: Dict[str, Any]):
        self.outputs = outputs

    def resource_id(self, address: str) -> str:
        value = self.outputs.get(address)
        if not value:
            raise AcceptanceError(f"Not found: {address}")
        return value

    def resource_name(self, address: str, segment: Optional[str] = None) -> str:
        """The Azure name of a resource in state.

        Resource groups are named by their ``resourceGroups`` segment, anything
        else by ``segment`` (the last segment when not given).
        """
        resource_id = self.resource_id(address)
        try:
            parsed = parse_resource_id(resource_id)
        except ResourceIDError as err:
            raise AcceptanceError(f"Bad: unable to parse ID of {address}: {err}") from err

        if segment is None:
            if not parsed.path:
                return parsed.resource_group
            return resource_id.rstrip("/").rsplit("/", 1)[-1]

        name = parsed.path.get(segment)
        if not name:
            raise AcceptanceError(f"Bad: {address} has no `{segment}` segment in {resource_id!r}")
        return name

    def resource_group_names(self) -> List[str]:
        names = []
        for value in self.outputs.values():
            if not isinstance(value, str):
                continue
            try:
                parsed = parse_resource_id(value)
            except ResourceIDError:
                continue
            if parsed.resource_group and not parsed.provider and parsed.resource_group not in names:
                names.append(parsed.resource_group)
        return names


@dataclass
class TestStep:
    config: Optional[str] = None
    check: Optional[CheckFunc] = None
    resource_name: Optional[str] = None
    import_state: bool = False
    import_state_verify: bool = False

    __test__ = False


@dataclass
class TestCase:
    steps: List[TestStep]
    check_destroy: Optional[CheckFunc] = None
    settings: Optional[AcceptanceSettings] = None
    stack_name: str = field(default_factory=lambda: f"acctest{rand_time_int()}")

    # not a pytest test class
    __test__ = False


def compose_checks(*checks: CheckFunc) -> CheckFunc:
    def check(state: State, client: ResourceManagementClient) -> None:
        for c in checks:
            c(state, client)

    return check


def check_resource_exists(kind: str, address: str, api_version: str) -> CheckFunc:
    """Check that the resource behind ``address`` can be read back from the API."""

    def check(state: State, client: ResourceManagementClient) -> None:
        resource_id = state.resource_id(address)
        name = state.resource_name(address)
        try:
            client.resources.get_by_id(resource_id, api_version)
        except ResourceNotFoundError as err:
            raise AcceptanceError(f"Bad: {kind}: {name!r} does not exist") from err
        except HttpResponseError as err:
            if err.status_code == 404:
                raise AcceptanceError(f"Bad: {kind}: {name!r} does not exist") from err
            raise AcceptanceError(f"Bad: Get on {kind} client: {err}") from err

    return check


def check_resource_group_destroy(state: State, client: ResourceManagementClient) -> None:
    for name in state.resource_group_names():
        if client.resource_groups.check_existence(name):
            raise AcceptanceError(f"Resource Group still exists: {name}")


def management_client(settings: AcceptanceSettings) -> ResourceManagementClient:
    credential = ClientSecretCredential(
        tenant_id=settings.tenant_id,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
    )
    return ResourceManagementClient(credential=credential, subscription_id=settings.subscription_id)


def inline_program(config_text: str) -> Callable[[], None]:
    config_data = parse_config(config_text)

    def program():
        builder = AzureResourceBuilder(config_data)
        builder.build()
        builder.export()

    return program


def _has_changes(change_summary: Optional[Dict[str, int]]) -> bool:
    return any(count for op, count in (change_summary or {}).items() if op != "same")


def run_step(
    stack: auto.Stack, step: TestStep, client: ResourceManagementClient, program: Callable[[], None]
) -> State:
    if step.import_state:
        refresh = stack.refresh(on_output=pulumi.log.debug)
        pulumi.log.info(f"Refreshed {step.resource_name}: {refresh.summary.resource_changes}")
        if step.import_state_verify:
            preview = stack.preview(program=program, on_output=pulumi.log.debug)
            if _has_changes(preview.change_summary):
                raise AcceptanceError(
                    f"ImportStateVerify attributes not equivalent for {step.resource_name}: "
                    f"{preview.change_summary}"
                )
        state = State({k: v.value for k, v in stack.outputs().items()})
        if step.resource_name is not None:
            state.resource_id(step.resource_name)
        return state

    result = stack.up(program=program, on_output=pulumi.log.debug)
    state = State({k: v.value for k, v in result.outputs.items()})

    if step.check is not None:
        step.check(state, client)
    return state


def run_test_case(case: TestCase) -> None:
    settings = case.settings or AcceptanceSettings.from_env()
    pre_check(settings)

    client = management_client(settings)
    first = next((s for s in case.steps if s.config is not None), None)
    if first is None:
        raise AcceptanceError("A test case needs at least one step with a config")

    stack = auto.create_or_select_stack(
        stack_name=case.stack_name,
        project_name=PROJECT_NAME,
        program=inline_program(first.config),
    )
    stack.set_config("azure-native:location", auto.ConfigValue(value=settings.location))
    stack.set_config("azure-native:subscriptionId", auto.ConfigValue(value=settings.subscription_id))

    state = State({})
    program = stack.workspace.program
    try:
        for i, step in enumerate(case.steps):
            pulumi.log.info(f"Running step {i + 1}/{len(case.steps)} on stack {case.stack_name}")
            if step.config is not None:
                program = inline_program(step.config)
            state = run_step(stack, step, client, program)
    finally:
        try:
            stack.destroy(on_output=pulumi.log.debug)
        except Exception as e:
            # the stack still owns resources, keep it so they can be cleaned up
            pulumi.log.error(f"Failed to destroy stack {case.stack_name}, leaving it in place: {e}")
            raise

        try:
            if case.check_destroy is not None:
                case.check_destroy(state, client)
        finally:
            stack.workspace.remove_stack(case.stack_name)
