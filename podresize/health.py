"""Post-resize health check."""

import logging
from typing import Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from .config import POD_PHASE_RUNNING
from .errors import LookupFailure, NotRunning

logger = logging.getLogger(__name__)


def verify_running(namespace: str, pod_name: str,
                   core_api: Optional[client.CoreV1Api] = None) -> None:
    """
    Check that a pod is in the Running phase. There is no polling; callers
    wait before calling this.

    Raises:
        LookupFailure: if the pod cannot be read
        NotRunning: if the pod is in any other phase
    """
    v1 = core_api if core_api is not None else client.CoreV1Api()
    pod_id = f"{namespace}/{pod_name}"

    try:
        pod = v1.read_namespaced_pod(name=pod_name, namespace=namespace)
    except ApiException as e:
        msg = f"failed to get Pod-{pod_id}: {e}"
        logger.error(msg)
        raise LookupFailure(msg) from e

    phase = pod.status.phase if pod.status else None
    if phase != POD_PHASE_RUNNING:
        err = NotRunning(pod_id, phase)
        logger.error(str(err))
        raise err

    logger.debug(f"pod-{pod_id} is running")
