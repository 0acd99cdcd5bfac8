"""Resolve the controller that owns a pod."""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from .config import CREATED_BY_ANNOTATION
from .errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerReference:
    """The controlling owner of a pod."""
    kind: str
    name: str
    is_controller: bool = True

    def __str__(self) -> str:
        return f"{self.kind}-{self.name}"


def resolve_parent(pod) -> Optional[OwnerReference]:
    """
    Find the controller of a pod.

    Owner references are checked first; the legacy created-by annotation
    is used as a fallback.

    Args:
        pod: Kubernetes Pod object

    Returns:
        The controlling owner, or None for a standalone pod

    Raises:
        DecodeError: if the created-by annotation is malformed
    """
    metadata = pod.metadata
    pod_id = f"{metadata.namespace}/{metadata.name}"

    for owner in metadata.owner_references or []:
        if owner.controller:
            return OwnerReference(kind=owner.kind, name=owner.name)

    logger.debug(f"cannot find pod-{pod_id} parent by OwnerReferences.")

    annotations = metadata.annotations or {}
    value = annotations.get(CREATED_BY_ANNOTATION)
    if value is not None:
        ref = _decode_created_by(pod_id, value)
        if ref.get("kind"):
            return OwnerReference(kind=ref["kind"], name=ref.get("name", ""))

    logger.debug(f"cannot find pod-{pod_id} parent by Annotations.")
    return None


def _decode_created_by(pod_id: str, value: str) -> dict:
    """Decode a serialized reference and return its inner object reference."""
    try:
        serialized = json.loads(value)
    except (json.JSONDecodeError, TypeError) as e:
        msg = f"failed to decode parent annotation of pod-{pod_id}: {e} [{value}]"
        logger.error(msg)
        raise DecodeError(msg) from e

    ref = serialized.get("reference", {}) if isinstance(serialized, dict) else None
    if not isinstance(ref, dict):
        msg = f"malformed parent annotation of pod-{pod_id}: [{value}]"
        logger.error(msg)
        raise DecodeError(msg)

    return ref
