"""Resource patch engine for the first container of a pod."""

import logging
from typing import Dict

from kubernetes import client

from .config import RESOURCE_CPU, RESOURCE_MEMORY
from .errors import InvalidRequest
from .utils import format_cpu, format_memory, quantities_equal, quantity_value

logger = logging.getLogger(__name__)


def requested_limits(cpu_limit: int, mem_limit: int) -> Dict[str, str]:
    """
    Build the requested limits map from command line units.

    Args:
        cpu_limit: CPU limit in millicores, 0 means unchanged
        mem_limit: Memory limit in MiB, 0 means unchanged

    Returns:
        Map of resource name to quantity string

    Raises:
        InvalidRequest: if neither limit is positive
    """
    if cpu_limit <= 0 and mem_limit <= 0:
        msg = f"nothing to resize: cpuLimit=[{cpu_limit}], memLimit=[{mem_limit}]"
        logger.error(msg)
        raise InvalidRequest(msg)

    result = {}
    if cpu_limit > 0:
        result[RESOURCE_CPU] = format_cpu(cpu_limit)
    if mem_limit > 0:
        result[RESOURCE_MEMORY] = format_memory(mem_limit)

    logger.debug(f"Requested limits: {result}")
    return result


def patch_capacity(container: client.V1Container, requested: Dict[str, str]) -> bool:
    """
    Merge requested limits into a container's resources.

    Limits are only rewritten when at least one requested value is new or
    numerically different. Afterwards every resource in limits has a
    request that does not exceed it: missing requests become "0" and
    larger ones are clamped down to the limit.

    Args:
        container: Container to patch in place
        requested: Map of resource name to quantity string

    Returns:
        True if the container was changed, False otherwise
    """
    if not requested:
        return False

    resources = container.resources or client.V1ResourceRequirements()
    limits = dict(resources.limits or {})

    changed = False
    for name, value in requested.items():
        current = limits.get(name)
        if current is None or not quantities_equal(current, value):
            logger.debug(f"container {container.name}: limit {name} {current} -> {value}")
            changed = True

    if not changed:
        return False

    limits.update(requested)

    requests = dict(resources.requests or {})
    for name, limit in limits.items():
        request = requests.get(name)
        if request is None:
            requests[name] = "0"
        elif quantity_value(request) > quantity_value(limit):
            requests[name] = limit

    resources.limits = limits
    resources.requests = requests
    container.resources = resources
    return True
