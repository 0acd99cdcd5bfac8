"""Utility functions for resource quantities and pod resource reporting."""

import logging
from decimal import Decimal
from typing import Dict, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.utils import parse_quantity

logger = logging.getLogger(__name__)


def format_cpu(millicores: int) -> str:
    """
    Format CPU millicores to Kubernetes string.

    Examples:
        200 -> "200m"
        1500 -> "1500m"
    """
    return f"{int(millicores)}m"


def format_memory(mebibytes: int) -> str:
    """
    Format mebibytes to Kubernetes memory string.

    Examples:
        256 -> "256Mi"
    """
    return f"{int(mebibytes)}Mi"


def quantity_value(quantity) -> Decimal:
    """Numeric value of a Kubernetes quantity ("500m" -> 0.5, "1Ki" -> 1024)."""
    return parse_quantity(quantity)


def quantities_equal(a, b) -> bool:
    """Compare two quantities numerically, so "0.5" equals "500m"."""
    return quantity_value(a) == quantity_value(b)


def get_pod_resources(pod) -> Dict[str, Dict[str, str]]:
    """
    Extract resource requests and limits from the first container of a pod.

    Returns:
        {
            "requests": {"cpu": "100m", "memory": "128Mi"},
            "limits": {"cpu": "500m", "memory": "256Mi"}
        }
    """
    result = {
        "requests": {"cpu": "", "memory": ""},
        "limits": {"cpu": "", "memory": ""}
    }

    if not pod.spec.containers or pod.spec.containers[0].resources is None:
        return result

    resources = pod.spec.containers[0].resources
    for kind, values in (("requests", resources.requests), ("limits", resources.limits)):
        for name in result[kind]:
            result[kind][name] = str((values or {}).get(name, ""))

    return result


def format_pod_resources(pod) -> str:
    """One line summary of a pod's first container resources."""
    res = get_pod_resources(pod)
    phase = pod.status.phase if pod.status else ""
    return (
        f"{pod.metadata.namespace}/{pod.metadata.name} "
        f"phase={phase} node={pod.spec.node_name or ''} "
        f"limits(cpu={res['limits']['cpu']}, memory={res['limits']['memory']}) "
        f"requests(cpu={res['requests']['cpu']}, memory={res['requests']['memory']})"
    )


def print_pod_resources(namespace: str, pod_name: str,
                        core_api: Optional[client.CoreV1Api] = None) -> bool:
    """
    Print the resources of a pod to stdout.

    Returns:
        True if the pod could be read, False otherwise
    """
    v1 = core_api if core_api is not None else client.CoreV1Api()
    try:
        pod = v1.read_namespaced_pod(name=pod_name, namespace=namespace)
    except ApiException as e:
        logger.error(f"Error reading pod {namespace}/{pod_name}: {e}")
        return False

    print(format_pod_resources(pod))
    return True
