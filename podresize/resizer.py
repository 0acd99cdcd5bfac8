"""Resize a pod by deleting it and recreating it with new limits."""

import logging
import time
from typing import Dict, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from .capacity import patch_capacity
from .config import DEFAULT_POD_GRACE_PERIOD, ResizeConfig
from .errors import DeletionFailure, InvalidRequest, LookupFailure, RecreationLost
from .parent import resolve_parent
from .scheduler_override import SchedulerOverride, scheduler_override
from .snapshot import PodSnapshot

logger = logging.getLogger(__name__)


class PodResizer:
    """
    Changes the resource limits of a running pod.

    Kubernetes cannot resize a pod in place, so the pod is deleted and a
    patched copy is created. If the pod is owned by a ReplicationController
    or ReplicaSet, the owner's template is pointed at a scheduler that does
    not exist for the duration, so the owner cannot win the race with a
    pod built from the old spec.
    """

    def __init__(
        self,
        config: ResizeConfig,
        core_api: Optional[client.CoreV1Api] = None,
        apps_api: Optional[client.AppsV1Api] = None,
    ):
        """
        Initialize the resizer.

        Args:
            config: Settings for this run
            core_api: CoreV1Api used for pods and ReplicationControllers
            apps_api: AppsV1Api used for ReplicaSets
        """
        self.config = config
        self.v1 = core_api if core_api is not None else client.CoreV1Api()
        self.overrider = SchedulerOverride(
            core_api=self.v1,
            apps_api=apps_api,
            sentinel=config.scheduler_name,
        )

    def resize(self, namespace: str, pod_name: str, requested: Dict[str, str]) -> bool:
        """
        Resize a pod, suspending its parent controller if it has one.

        Args:
            namespace: Pod namespace
            pod_name: Pod name
            requested: Map of resource name to new limit

        Returns:
            True if the pod was recreated, False if nothing had to change
        """
        pod_id = f"{namespace}/{pod_name}"

        try:
            pod = self.v1.read_namespaced_pod(name=pod_name, namespace=namespace)
        except ApiException as e:
            msg = f"resize-aborted: get original pod-{pod_id}: {e}"
            logger.error(msg)
            raise LookupFailure(msg) from e

        parent = resolve_parent(pod)
        if parent is None:
            logger.info(f"pod-{pod_id} is a standalone pod")
            return self.resize_pod(pod, requested)

        logger.info(f"pod-{pod_id} parent is {parent}")
        with scheduler_override(self.overrider, namespace, parent):
            return self.resize_pod(pod, requested)

    def resize_pod(self, pod: client.V1Pod, requested: Dict[str, str]) -> bool:
        """
        Delete a pod and create a copy of it with the requested limits.

        Only the first container is patched.

        Returns:
            True if the pod was recreated, False if nothing had to change

        Raises:
            DeletionFailure: if the original pod could not be deleted
            RecreationLost: if the original pod is gone and the copy was not created
        """
        snapshot = PodSnapshot.from_pod(pod)
        pod_id = snapshot.pod_id
        logger.info(f"resize-pod: begin to resize Pod {pod_id}")

        if not snapshot.pod.spec.containers:
            msg = f"pod-{pod_id} has no containers"
            logger.error(msg)
            raise InvalidRequest(msg)

        if not patch_capacity(snapshot.pod.spec.containers[0], requested):
            logger.info(f"no need to resize Pod-container: {pod_id}")
            return False

        if self.config.node_name:
            snapshot.pin_to(self.config.node_name)
        elif self.config.pin_to_original_node:
            snapshot.pin_to(snapshot.original_node)

        try:
            self.v1.delete_namespaced_pod(
                name=snapshot.name,
                namespace=snapshot.namespace,
                grace_period_seconds=DEFAULT_POD_GRACE_PERIOD
            )
            logger.info(f"Deleted pod {pod_id}")
        except (ApiException, HTTPError) as e:
            msg = f"resize-failed: failed to delete original pod-{pod_id}: {e}"
            logger.error(msg)
            raise DeletionFailure(msg) from e

        if self.config.recreate_delay_seconds:
            time.sleep(self.config.recreate_delay_seconds)

        try:
            self.v1.create_namespaced_pod(
                namespace=snapshot.namespace,
                body=snapshot.pod
            )
        except (ApiException, HTTPError) as e:
            # transport errors too: the original is gone either way
            msg = f"resize-failed: pod-{pod_id} was deleted but the new pod could not be created: {e}"
            logger.error(msg)
            raise RecreationLost(msg) from e

        logger.info(f"Created resized pod {pod_id}")
        return True
