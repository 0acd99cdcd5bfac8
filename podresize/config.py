"""Configuration settings for the Pod Resizer."""

from dataclasses import dataclass

# A scheduler that does not exist: pods bound to it stay Pending while we move
DEFAULT_NONE_EXIST_SCHEDULER_NAME = "turbo-none-exist-scheduler"

# Supported parent controller kinds
KIND_REPLICATION_CONTROLLER = "ReplicationController"
KIND_REPLICA_SET = "ReplicaSet"

# Legacy annotation holding a serialized reference to the creator
CREATED_BY_ANNOTATION = "kubernetes.io/created-by"

# Delete the original pod immediately
DEFAULT_POD_GRACE_PERIOD = 0

# Health check settings
POD_PHASE_RUNNING = "Running"
DEFAULT_HEALTH_CHECK_DELAY_SECONDS = 10

# Resource names handled by the patch engine
RESOURCE_CPU = "cpu"
RESOURCE_MEMORY = "memory"


@dataclass(frozen=True)
class ResizeConfig:
    """Settings for a single resize run."""
    pod_name: str
    namespace: str = "default"
    node_name: str = ""
    cpu_limit: int = 0
    mem_limit: int = 0
    scheduler_name: str = DEFAULT_NONE_EXIST_SCHEDULER_NAME
    pin_to_original_node: bool = True
    recreate_delay_seconds: float = 0
    health_check_delay_seconds: float = DEFAULT_HEALTH_CHECK_DELAY_SECONDS

    @classmethod
    def from_args(cls, args) -> "ResizeConfig":
        """Create ResizeConfig from parsed command line arguments."""
        return cls(
            pod_name=args.pod_name,
            namespace=args.namespace,
            node_name=args.node_name or "",
            cpu_limit=args.cpu_limit,
            mem_limit=args.mem_limit,
            scheduler_name=args.scheduler_name,
            pin_to_original_node=not args.no_pin,
            health_check_delay_seconds=args.health_check_delay,
        )

    @property
    def pod_id(self) -> str:
        return f"{self.namespace}/{self.pod_name}"
