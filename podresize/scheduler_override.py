"""
Temporarily point a controller's pod template at a scheduler that does
not exist, so any pod the controller spawns during a resize stays Pending
instead of racing the replacement pod.
"""

import contextlib
import enum
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from .config import (
    DEFAULT_NONE_EXIST_SCHEDULER_NAME,
    KIND_REPLICA_SET,
    KIND_REPLICATION_CONTROLLER,
)
from .errors import LookupFailure, OverrideVerificationFailure, UnsupportedParentKind
from .parent import OwnerReference

logger = logging.getLogger(__name__)


class ControllerTemplate:
    """Access to the pod template scheduler name of one controller kind."""

    kind = ""

    def read(self, namespace: str, name: str):
        raise NotImplementedError

    def replace(self, namespace: str, name: str, body):
        raise NotImplementedError

    def read_scheduler_name(self, namespace: str, name: str) -> str:
        obj = self.read(namespace, name)
        return obj.spec.template.spec.scheduler_name or ""

    def write_scheduler_name(self, namespace: str, name: str, scheduler_name: str) -> None:
        """
        Set the template scheduler name.

        The object is read and written back as is, so the API server
        rejects the write if someone else modified it in between.
        """
        obj = self.read(namespace, name)
        if (obj.spec.template.spec.scheduler_name or "") == scheduler_name:
            logger.debug(f"no need to update schedulerName for {self.kind}-[{namespace}/{name}]")
            return

        obj.spec.template.spec.scheduler_name = scheduler_name
        self.replace(namespace, name, obj)


class ReplicationControllerTemplate(ControllerTemplate):
    kind = KIND_REPLICATION_CONTROLLER

    def __init__(self, core_api: Optional[client.CoreV1Api] = None):
        self.v1 = core_api if core_api is not None else client.CoreV1Api()

    def read(self, namespace: str, name: str):
        return self.v1.read_namespaced_replication_controller(name=name, namespace=namespace)

    def replace(self, namespace: str, name: str, body):
        return self.v1.replace_namespaced_replication_controller(
            name=name, namespace=namespace, body=body
        )


class ReplicaSetTemplate(ControllerTemplate):
    kind = KIND_REPLICA_SET

    def __init__(self, apps_api: Optional[client.AppsV1Api] = None):
        self.apps_v1 = apps_api if apps_api is not None else client.AppsV1Api()

    def read(self, namespace: str, name: str):
        return self.apps_v1.read_namespaced_replica_set(name=name, namespace=namespace)

    def replace(self, namespace: str, name: str, body):
        return self.apps_v1.replace_namespaced_replica_set(
            name=name, namespace=namespace, body=body
        )


class SessionState(enum.Enum):
    CREATED = "Created"
    VERIFIED = "Verified"
    RESTORED = "Restored"
    SKIPPED_RESTORE = "SkippedRestore"
    RESTORE_FAILED = "RestoreFailed"


@dataclass
class SchedulerOverrideSession:
    """One override of a controller's scheduler name, restored exactly once."""
    controller_kind: str
    controller_name: str
    namespace: str
    prior_scheduler_name: str
    sentinel_scheduler_name: str
    overridden: bool = False
    state: SessionState = SessionState.CREATED

    @property
    def controller_id(self) -> str:
        return f"{self.controller_kind}-{self.namespace}/{self.controller_name}"

    @property
    def consumed(self) -> bool:
        return self.state in (
            SessionState.RESTORED,
            SessionState.SKIPPED_RESTORE,
            SessionState.RESTORE_FAILED,
        )


class SchedulerOverride:
    """Begins and ends scheduler name overrides on parent controllers."""

    def __init__(
        self,
        core_api: Optional[client.CoreV1Api] = None,
        apps_api: Optional[client.AppsV1Api] = None,
        sentinel: str = DEFAULT_NONE_EXIST_SCHEDULER_NAME,
    ):
        """
        Initialize the override controller.

        Args:
            core_api: CoreV1Api used for ReplicationControllers
            apps_api: AppsV1Api used for ReplicaSets
            sentinel: Name of the scheduler that does not exist
        """
        self.sentinel = sentinel
        self.templates: Dict[str, ControllerTemplate] = {
            KIND_REPLICATION_CONTROLLER: ReplicationControllerTemplate(core_api),
            KIND_REPLICA_SET: ReplicaSetTemplate(apps_api),
        }

    def template_for(self, parent: OwnerReference) -> ControllerTemplate:
        template = self.templates.get(parent.kind)
        if template is None:
            err = UnsupportedParentKind(parent.kind, parent.name)
            logger.warning(str(err))
            raise err
        return template

    def begin_override(self, namespace: str, parent: OwnerReference) -> SchedulerOverrideSession:
        """
        Point the parent's pod template at the sentinel scheduler.

        Returns:
            A verified session to hand to end_override

        Raises:
            UnsupportedParentKind: for any controller other than RC/RS
            LookupFailure: if the controller cannot be read
            OverrideVerificationFailure: if the sentinel could not be confirmed
                after reverting a sentinel this call may have written
        """
        template = self.template_for(parent)
        parent_id = f"{parent.kind}-{namespace}/{parent.name}"

        try:
            current = template.read_scheduler_name(namespace, parent.name)
        except ApiException as e:
            msg = f"failed to get {parent_id}: {e}"
            logger.error(msg)
            raise LookupFailure(msg) from e

        overridden = current != self.sentinel
        prior = current if overridden else ""
        session = SchedulerOverrideSession(
            controller_kind=parent.kind,
            controller_name=parent.name,
            namespace=namespace,
            prior_scheduler_name=prior,
            sentinel_scheduler_name=self.sentinel,
            overridden=overridden,
        )

        write_error = None
        if overridden:
            try:
                template.write_scheduler_name(namespace, parent.name, self.sentinel)
            except ApiException as e:
                write_error = e
        else:
            logger.debug(f"{parent_id} already uses scheduler {self.sentinel}")

        verify_error = None
        try:
            confirmed = template.read_scheduler_name(namespace, parent.name)
            if confirmed != self.sentinel:
                verify_error = f"schedulerName is [{confirmed}], expected [{self.sentinel}]"
        except ApiException as e:
            verify_error = e

        if verify_error is not None:
            msg = f"override-failed: parent-[{parent_id}]"
            if write_error is not None:
                msg += f" update: {write_error}"
            msg += f" check: {verify_error}"
            logger.error(msg)
            if overridden:
                # the write may have landed; end_override only reverts a live sentinel
                self.end_override(session)
            raise OverrideVerificationFailure(msg)

        if write_error is not None:
            logger.warning(f"update of {parent_id} failed but schedulerName is confirmed: {write_error}")

        session.state = SessionState.VERIFIED
        logger.info(f"{parent_id} schedulerName set to {self.sentinel} (was [{prior}])")
        return session

    def end_override(self, session: SchedulerOverrideSession) -> SessionState:
        """
        Restore the scheduler name saved by begin_override.

        The restore only happens when the live value is still the sentinel,
        so changes made by somebody else during the resize are kept.
        Failures are logged, never raised.
        """
        if session.consumed:
            logger.warning(f"override of {session.controller_id} already ended: {session.state.value}")
            return session.state

        if not session.overridden:
            logger.debug(f"{session.controller_id} had the sentinel before resize, nothing to restore")
            session.state = SessionState.SKIPPED_RESTORE
            return session.state

        template = self.templates[session.controller_kind]
        try:
            current = template.read_scheduler_name(session.namespace, session.controller_name)
            if current != session.sentinel_scheduler_name:
                logger.warning(
                    f"{session.controller_id} schedulerName changed to [{current}] during resize, "
                    f"not restoring [{session.prior_scheduler_name}]"
                )
                session.state = SessionState.SKIPPED_RESTORE
                return session.state

            template.write_scheduler_name(
                session.namespace, session.controller_name, session.prior_scheduler_name
            )
        except ApiException as e:
            logger.error(f"failed to restore schedulerName of {session.controller_id}: {e}")
            session.state = SessionState.RESTORE_FAILED
            return session.state

        logger.info(f"{session.controller_id} schedulerName restored to {session.prior_scheduler_name}")
        session.state = SessionState.RESTORED
        return session.state


@contextlib.contextmanager
def scheduler_override(
    overrider: SchedulerOverride, namespace: str, parent: OwnerReference
) -> Iterator[SchedulerOverrideSession]:
    """Hold a scheduler override for the duration of the block."""
    session = overrider.begin_override(namespace, parent)
    try:
        yield session
    finally:
        overrider.end_override(session)
