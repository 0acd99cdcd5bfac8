"""Exceptions raised while resizing a pod."""


class ResizeError(Exception):
    """Base class for every resize failure."""


class InvalidRequest(ResizeError):
    """Raised when no resource change was requested."""


class LookupFailure(ResizeError):
    """Raised when a pod or controller could not be read."""


class DecodeError(LookupFailure):
    """Raised when the created-by annotation cannot be decoded."""


class UnsupportedParentKind(ResizeError):
    """Raised when the owning controller is not a ReplicationController or ReplicaSet."""

    def __init__(self, kind: str, name: str):
        super().__init__(f"unsupported parent-[{name}] Kind-[{kind}]")
        self.kind = kind
        self.name = name


class OverrideVerificationFailure(ResizeError):
    """Raised when the sentinel scheduler name could not be confirmed.

    The target pod is never deleted once this is raised.
    """


class DeletionFailure(ResizeError):
    """Raised when the original pod could not be deleted. The pod is presumed intact."""


class RecreationLost(ResizeError):
    """Raised when the original pod was deleted but the replacement was not created.

    There is no rollback: the original object is gone and needs an operator.
    """


class NotRunning(ResizeError):
    """Raised when the resized pod is not in the Running phase."""

    def __init__(self, pod_id: str, phase):
        super().__init__(f"pod-{pod_id} is not running: {phase}")
        self.pod_id = pod_id
        self.phase = phase
