# resource_id.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit


class ResourceIDError(ValueError):
    pass


@dataclass
class ResourceID:
    """An Azure Resource Manager ID split into its well-known parts.

    Segments that aren't the subscription, resource group or provider stay in
    ``path`` until a caller claims them with ``pop_segment``.
    """

    subscription_id: str
    resource_group: str = ""
    provider: str = ""
    secondary_provider: str = ""
    path: Dict[str, str] = field(default_factory=dict)

    def pop_segment(self, name: str) -> str:
        value = self.path.pop(name, "")
        if not value:
            raise ResourceIDError(f"ID was missing the `{name}` element")
        return value

    def validate_no_empty_segments(self, source_id: str) -> None:
        if not self.path:
            return

        empty = [key for key, value in self.path.items() if not value]
        if empty:
            raise ResourceIDError(f"ID contained empty segments: {source_id!r}, {empty}")
        raise ResourceIDError(f"ID contained more segments than required: {source_id!r}, {self.path}")


def parse_resource_id(id: str) -> ResourceID:
    try:
        id_path = urlsplit(id).path
    except ValueError as err:
        raise ResourceIDError(f"Cannot parse Azure ID: {err}") from err

    if not id_path.startswith("/"):
        raise ResourceIDError(f"Cannot parse Azure ID: {id!r} is not an absolute path")

    components = id_path.strip("/").split("/")

    if len(components) % 2 != 0:
        raise ResourceIDError(f"The number of path segments is not divisible by 2 in {id!r}")

    segments: Dict[str, str] = {}
    secondary_provider = ""
    for i in range(0, len(components), 2):
        key, value = components[i], components[i + 1]
        if not key or not value:
            raise ResourceIDError(
                f"Key/Value cannot be empty strings. Key: '{key}', Value: '{value}'"
            )
        # the first subscription wins
        if key == "subscriptions" and key in segments:
            continue
        # nested providers (e.g. extension resources) keep the first one as the owner
        if key == "providers" and "providers" in segments:
            secondary_provider = value
            continue
        segments[key] = value

    subscription_id = segments.pop("subscriptions", "")
    if not subscription_id:
        raise ResourceIDError(f"No subscription ID found in: {id!r}")

    resource_group = segments.pop("resourceGroups", "") or segments.pop("resourcegroups", "")

    return ResourceID(
        subscription_id=subscription_id,
        resource_group=resource_group,
        provider=segments.pop("providers", ""),
        secondary_provider=secondary_provider,
        path=segments,
    )


def validate_resource_id(i: Any, k: str) -> Tuple[List[str], List[Exception]]:
    warnings: List[str] = []
    errors: List[Exception] = []

    if not isinstance(i, str):
        errors.append(ValueError(f"expected type of {k!r} to be string"))
        return warnings, errors

    try:
        parse_resource_id(i)
    except ResourceIDError as err:
        errors.append(ValueError(f"Can not parse {k!r} as a resource id: {err}"))

    return warnings, errors


def validation_message(errors: List[Exception]) -> Optional[str]:
    if not errors:
        return None
    return "; ".join(str(e) for e in errors)
