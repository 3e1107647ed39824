"""
Test utilities for azvm tests.

Builders for fake ARM payloads and responses, plus a sleep stand-in
for polling loops.
"""

from typing import Any
from unittest.mock import Mock

from requests.structures import CaseInsensitiveDict

from azvm.arm_client import ArmResponse


def make_response(
    status_code: int = 200, headers: dict[str, str] | None = None, body: Any = None
) -> ArmResponse:
    """Build an ArmResponse as returned by ArmClient."""
    return ArmResponse(
        status_code=status_code,
        headers=CaseInsensitiveDict(headers or {}),
        body=body,
    )


def make_http_response(
    status_code: int = 200,
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    text: str = "",
) -> Mock:
    """Build a mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers or {})
    response.content = b"{}" if json_body is not None else text.encode()
    response.text = text
    response.reason = ""
    if json_body is not None:
        response.json.return_value = json_body
    else:
        response.json.side_effect = ValueError("No JSON")
    return response


def power_statuses(power_state: str) -> list[dict[str, str]]:
    return [
        {"code": "ProvisioningState/succeeded", "displayStatus": "Provisioning succeeded"},
        {"code": f"PowerState/{power_state.split()[-1]}", "displayStatus": power_state},
    ]


def instance_view(power_state: str) -> dict[str, Any]:
    """ARM instanceView payload reporting the given power state."""
    return {"statuses": power_statuses(power_state)}


def vm_payload(
    name: str = "vm-a",
    resource_group: str = "rg-vms",
    subscription_id: str = "sub-123",
    power_state: str | None = None,
    location: str = "westeurope",
    tags: dict[str, str] | None = None,
) -> dict[str, Any]:
    """ARM virtualMachines payload."""
    properties: dict[str, Any] = {
        "storageProfile": {
            "imageReference": {
                "offer": "0001-com-ubuntu-server-jammy",
                "sku": "22_04-lts-gen2",
                "version": "latest",
            }
        }
    }
    if power_state is not None:
        properties["instanceView"] = instance_view(power_state)
    return {
        "name": name,
        "id": (
            f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
            f"/providers/Microsoft.Compute/virtualMachines/{name}"
        ),
        "type": "Microsoft.Compute/virtualMachines",
        "location": location,
        "tags": tags or {},
        "properties": properties,
    }


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
