"""Subscription and resource group lookups."""

from azvm.arm_client import ArmClient
from azvm.models import ResourceGroup, Subscription

SUBSCRIPTIONS_API_VERSION = "2022-12-01"
RESOURCES_API_VERSION = "2022-09-01"


class ResourceClient:
    """Read subscriptions and resource groups."""

    def __init__(self, arm: ArmClient):
        self.arm = arm

    def get_subscription(self, subscription_id: str) -> Subscription:
        data = self.arm.get_json(f"/subscriptions/{subscription_id}", SUBSCRIPTIONS_API_VERSION)
        return Subscription.from_dict(data)

    def list_subscriptions(self) -> list[Subscription]:
        items = self.arm.list_values("/subscriptions", SUBSCRIPTIONS_API_VERSION)
        return [Subscription.from_dict(item) for item in items]

    def get_resource_group(self, resource_group: str, subscription_id: str) -> ResourceGroup:
        data = self.arm.get_json(
            f"/subscriptions/{subscription_id}/resourcegroups/{resource_group}",
            RESOURCES_API_VERSION,
        )
        return ResourceGroup.from_dict(data)

    def list_resource_groups(self, subscription_id: str) -> list[ResourceGroup]:
        items = self.arm.list_values(
            f"/subscriptions/{subscription_id}/resourcegroups", RESOURCES_API_VERSION
        )
        return [ResourceGroup.from_dict(item) for item in items]


__all__ = ["ResourceClient"]
