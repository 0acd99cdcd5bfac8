"""Creation template built from a running pod."""

import copy
from dataclasses import dataclass

from kubernetes import client


@dataclass(frozen=True)
class PodSnapshot:
    """
    A deep copy of a pod, cleared of every field that is assigned by the
    cluster so it can be submitted as a new pod.

    The original node assignment is kept in ``original_node``.
    """
    pod: client.V1Pod
    original_node: str = ""

    @classmethod
    def from_pod(cls, pod: client.V1Pod) -> "PodSnapshot":
        """Create a snapshot from a pod read from the cluster."""
        new_pod = client.V1Pod(
            api_version=pod.api_version or "v1",
            kind=pod.kind or "Pod",
            metadata=copy.deepcopy(pod.metadata),
            spec=copy.deepcopy(pod.spec),
        )

        # Clear fields that shouldn't be set on creation
        meta = new_pod.metadata
        meta.self_link = None
        meta.resource_version = None
        meta.generation = None
        meta.creation_timestamp = None
        meta.deletion_timestamp = None
        meta.deletion_grace_period_seconds = None
        meta.uid = None
        meta.managed_fields = None

        spec = new_pod.spec
        spec.hostname = None
        spec.subdomain = None
        spec.node_name = None

        return cls(pod=new_pod, original_node=pod.spec.node_name or "")

    @property
    def namespace(self) -> str:
        return self.pod.metadata.namespace

    @property
    def name(self) -> str:
        return self.pod.metadata.name

    @property
    def pod_id(self) -> str:
        return f"{self.namespace}/{self.name}"

    def pin_to(self, node_name: str) -> None:
        """Bind the replacement pod directly to a node."""
        self.pod.spec.node_name = node_name or None
