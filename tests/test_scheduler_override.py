"""Tests for the scheduler name override of parent controllers."""

from unittest.mock import MagicMock

import pytest

from factories import ObjectStore, api_error, make_replica_set, make_replication_controller
from podresize.errors import LookupFailure, OverrideVerificationFailure, UnsupportedParentKind
from podresize.parent import OwnerReference
from podresize.scheduler_override import SchedulerOverride, SessionState, scheduler_override

SENTINEL = "turbo-none-exist-scheduler"
RS_PARENT = OwnerReference(kind="ReplicaSet", name="web")


@pytest.fixture
def store() -> ObjectStore:
    return ObjectStore(make_replica_set(scheduler_name="default-scheduler"))


@pytest.fixture
def apps_api(store) -> MagicMock:
    """AppsV1Api mock backed by a single ReplicaSet."""
    api = MagicMock()
    api.read_namespaced_replica_set.side_effect = store.read
    api.replace_namespaced_replica_set.side_effect = store.replace
    return api


@pytest.fixture
def overrider(apps_api) -> SchedulerOverride:
    return SchedulerOverride(core_api=MagicMock(), apps_api=apps_api, sentinel=SENTINEL)


class TestBeginOverride:

    def test_sets_sentinel_and_remembers_prior(self, overrider, store):
        session = overrider.begin_override("default", RS_PARENT)

        assert session.state == SessionState.VERIFIED
        assert session.prior_scheduler_name == "default-scheduler"
        assert session.sentinel_scheduler_name == SENTINEL
        assert session.overridden is True
        assert store.scheduler_name == SENTINEL
        assert store.replaced == [SENTINEL]

    def test_replace_sends_back_the_read_object(self, overrider, apps_api):
        overrider.begin_override("default", RS_PARENT)

        kwargs = apps_api.replace_namespaced_replica_set.call_args.kwargs
        assert kwargs["name"] == "web"
        assert kwargs["namespace"] == "default"
        assert kwargs["body"].metadata.resource_version == "42"

    def test_already_sentinel_skips_write(self, overrider, store):
        store.scheduler_name = SENTINEL

        session = overrider.begin_override("default", RS_PARENT)

        assert session.prior_scheduler_name == ""
        assert session.overridden is False
        assert session.state == SessionState.VERIFIED
        assert store.replaced == []

    def test_unset_scheduler_name_is_overridden(self, overrider, store):
        store.scheduler_name = None

        session = overrider.begin_override("default", RS_PARENT)

        assert session.overridden is True
        assert session.prior_scheduler_name == ""
        assert store.scheduler_name == SENTINEL

    def test_unsupported_kind(self, overrider, apps_api):
        with pytest.raises(UnsupportedParentKind) as exc_info:
            overrider.begin_override("default", OwnerReference(kind="StatefulSet", name="db"))

        assert exc_info.value.kind == "StatefulSet"
        apps_api.read_namespaced_replica_set.assert_not_called()

    def test_read_failure(self, overrider, apps_api):
        apps_api.read_namespaced_replica_set.side_effect = api_error(404, "Not Found")

        with pytest.raises(LookupFailure):
            overrider.begin_override("default", RS_PARENT)

    def test_write_failure_reports_update_and_check(self, overrider, apps_api, store):
        apps_api.replace_namespaced_replica_set.side_effect = api_error(409, "Conflict")

        with pytest.raises(OverrideVerificationFailure) as exc_info:
            overrider.begin_override("default", RS_PARENT)

        message = str(exc_info.value)
        assert "update" in message
        assert "Conflict" in message
        assert "check" in message
        assert "default-scheduler" in message
        assert store.scheduler_name == "default-scheduler"

    def test_write_that_does_not_stick(self, overrider, apps_api, store):
        def revert(name, namespace, body):
            store.scheduler_name = "custom-scheduler"

        apps_api.replace_namespaced_replica_set.side_effect = revert

        with pytest.raises(OverrideVerificationFailure) as exc_info:
            overrider.begin_override("default", RS_PARENT)

        assert "custom-scheduler" in str(exc_info.value)

    def test_verification_read_failure_restores_prior(self, overrider, apps_api, store):
        reads = iter([None, None, api_error(503, "Service Unavailable")])

        def flaky_read(name, namespace):
            error = next(reads, None)
            if error is not None:
                raise error
            return store.read(name, namespace)

        apps_api.read_namespaced_replica_set.side_effect = flaky_read

        with pytest.raises(OverrideVerificationFailure) as exc_info:
            overrider.begin_override("default", RS_PARENT)

        assert "Service Unavailable" in str(exc_info.value)
        assert store.replaced == [SENTINEL, "default-scheduler"]
        assert store.scheduler_name == "default-scheduler"

    def test_rejected_write_is_not_reverted(self, overrider, apps_api, store):
        apps_api.replace_namespaced_replica_set.side_effect = api_error(409, "Conflict")

        with pytest.raises(OverrideVerificationFailure):
            overrider.begin_override("default", RS_PARENT)

        assert apps_api.replace_namespaced_replica_set.call_count == 1
        assert store.scheduler_name == "default-scheduler"

    def test_write_failure_tolerated_when_sentinel_confirmed(self, overrider, apps_api, store):
        def raced(name, namespace, body):
            store.scheduler_name = SENTINEL
            raise api_error(409, "Conflict")

        apps_api.replace_namespaced_replica_set.side_effect = raced

        session = overrider.begin_override("default", RS_PARENT)

        assert session.state == SessionState.VERIFIED
        assert session.prior_scheduler_name == "default-scheduler"

    def test_replication_controller(self):
        rc_store = ObjectStore(make_replication_controller(scheduler_name="default-scheduler"))
        core_api = MagicMock()
        core_api.read_namespaced_replication_controller.side_effect = rc_store.read
        core_api.replace_namespaced_replication_controller.side_effect = rc_store.replace
        apps_api = MagicMock()
        overrider = SchedulerOverride(core_api=core_api, apps_api=apps_api, sentinel=SENTINEL)

        session = overrider.begin_override("default", OwnerReference(kind="ReplicationController", name="web"))

        assert session.controller_kind == "ReplicationController"
        assert rc_store.scheduler_name == SENTINEL

        assert overrider.end_override(session) == SessionState.RESTORED
        assert rc_store.scheduler_name == "default-scheduler"
        assert rc_store.replaced == [SENTINEL, "default-scheduler"]
        apps_api.replace_namespaced_replica_set.assert_not_called()


class TestEndOverride:

    def test_restores_prior(self, overrider, store):
        session = overrider.begin_override("default", RS_PARENT)

        assert overrider.end_override(session) == SessionState.RESTORED
        assert store.scheduler_name == "default-scheduler"
        assert store.replaced == [SENTINEL, "default-scheduler"]

    def test_keeps_third_party_change(self, overrider, store):
        session = overrider.begin_override("default", RS_PARENT)
        store.scheduler_name = "someone-else"

        assert overrider.end_override(session) == SessionState.SKIPPED_RESTORE
        assert store.scheduler_name == "someone-else"
        assert store.replaced == [SENTINEL]

    def test_preexisting_sentinel_is_left_alone(self, overrider, store):
        store.scheduler_name = SENTINEL
        session = overrider.begin_override("default", RS_PARENT)

        assert overrider.end_override(session) == SessionState.SKIPPED_RESTORE
        assert store.scheduler_name == SENTINEL
        assert store.replaced == []

    def test_unset_scheduler_name_is_written_back(self, overrider, store):
        store.scheduler_name = None
        session = overrider.begin_override("default", RS_PARENT)

        assert overrider.end_override(session) == SessionState.RESTORED
        assert store.replaced == [SENTINEL, ""]
        assert not store.scheduler_name

    def test_restore_failure_is_swallowed(self, overrider, apps_api, store):
        session = overrider.begin_override("default", RS_PARENT)
        apps_api.replace_namespaced_replica_set.side_effect = api_error()

        assert overrider.end_override(session) == SessionState.RESTORE_FAILED
        assert store.scheduler_name == SENTINEL

    def test_restore_read_failure_is_swallowed(self, overrider, apps_api, store):
        session = overrider.begin_override("default", RS_PARENT)
        apps_api.read_namespaced_replica_set.side_effect = api_error(404, "Not Found")

        assert overrider.end_override(session) == SessionState.RESTORE_FAILED

    def test_session_is_consumed_once(self, overrider, store):
        session = overrider.begin_override("default", RS_PARENT)
        overrider.end_override(session)
        store.scheduler_name = SENTINEL

        assert overrider.end_override(session) == SessionState.RESTORED
        assert store.scheduler_name == SENTINEL
        assert store.replaced == [SENTINEL, "default-scheduler"]


class TestSchedulerOverrideContext:

    def test_restores_on_error(self, overrider, store):
        with pytest.raises(RuntimeError):
            with scheduler_override(overrider, "default", RS_PARENT) as session:
                assert store.scheduler_name == SENTINEL
                raise RuntimeError("boom")

        assert session.state == SessionState.RESTORED
        assert store.scheduler_name == "default-scheduler"

    def test_failed_begin_has_nothing_to_restore(self, overrider, apps_api, store):
        apps_api.read_namespaced_replica_set.side_effect = api_error()
        body = MagicMock()

        with pytest.raises(LookupFailure):
            with scheduler_override(overrider, "default", RS_PARENT):
                body()

        body.assert_not_called()
        assert store.replaced == []
