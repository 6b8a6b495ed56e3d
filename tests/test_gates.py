"""Tests for trigger events and the upstream gates."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from aksdeploy.errors import MalformedArtifactError
from aksdeploy.events import TriggerEvent, event_from_payload, load_event, parse_bool
from aksdeploy.pipeline.verify import (
    evaluate_gate,
    verify_docker,
    verify_terraform,
    verify_upstreams,
)
from aksdeploy.upstream.registry import DOCKER, TERRAFORM

from conftest import (
    FakeArtifactStore,
    FakeRunHistory,
    image_artifact,
    terraform_artifact,
)

FALLBACK = {"fallback_api": "r/api:latest", "fallback_frontend": "r/front:v3"}


def _completed(workflow_name: str, conclusion: str = "success", run_id: int = 42) -> TriggerEvent:
    return TriggerEvent(
        name="workflow_run",
        workflow_name=workflow_name,
        conclusion=conclusion,
        run_id=run_id,
        head_branch="main",
    )


@pytest.mark.unit
class TestParseBool:
    """Tests for dispatch input parsing."""

    @pytest.mark.parametrize("value", [True, "true", "True", "TRUE", " true "])
    def test_true_values(self, value: object) -> None:
        assert parse_bool(value, default=False) is True

    @pytest.mark.parametrize("value", [False, "false", "False"])
    def test_false_values(self, value: object) -> None:
        assert parse_bool(value, default=True) is False

    @pytest.mark.parametrize("value", [None, ""])
    def test_absent_uses_default(self, value: object) -> None:
        assert parse_bool(value, default=True) is True

    def test_rejects_other_strings(self) -> None:
        with pytest.raises(ValueError, match="'yes'"):
            parse_bool("yes", default=True)


@pytest.mark.unit
class TestTriggerEvent:
    """Tests for event payload parsing."""

    def test_workflow_run_payload(self) -> None:
        payload = {
            "workflow_run": {
                "id": 99,
                "name": "Terraform Infrastructure",
                "conclusion": "success",
                "head_branch": "main",
            }
        }
        event = event_from_payload("workflow_run", payload)
        assert event.run_id == 99
        assert event.completed_successfully("Terraform Infrastructure")
        assert not event.completed_successfully("Build and publish image to Docker Hub")

    def test_push_ref_becomes_branch(self) -> None:
        event = event_from_payload("push", {"ref": "refs/heads/main"})
        assert event.head_branch == "main"
        assert event.is_manifest_change

    def test_pull_request_uses_base_branch(self) -> None:
        """The merge ref of a pull request is not a branch with workflow runs."""
        payload = {
            "ref": "refs/pull/7/merge",
            "pull_request": {"head": {"ref": "feature/k8s"}, "base": {"ref": "main"}},
        }
        event = event_from_payload("pull_request", payload)
        assert event.head_branch == "main"
        assert event.is_manifest_change

    def test_dispatch_string_input_false_deploys(self) -> None:
        """A string "false" input must not be treated as truthy."""
        event = event_from_payload("workflow_dispatch", {"inputs": {"simulate_deployment": "false"}})
        assert event.is_manual
        assert event.simulate(default=True) is False

    def test_dispatch_without_input_uses_default(self) -> None:
        assert TriggerEvent(name="workflow_dispatch").simulate(default=True) is True

    def test_load_event_without_payload(self, tmp_path: Path) -> None:
        event = load_event("workflow_dispatch", tmp_path / "missing.json")
        assert event == TriggerEvent(name="workflow_dispatch")

    def test_load_event_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text(json.dumps({"inputs": {"simulate_deployment": True}}))
        assert load_event("workflow_dispatch", path).inputs == {"simulate_deployment": True}

    def test_load_event_rejects_bad_json(self, tmp_path: Path) -> None:
        path = tmp_path / "event.json"
        path.write_text("{")
        with pytest.raises(MalformedArtifactError):
            load_event("push", path)


@pytest.mark.unit
class TestEvaluateGate:
    """Tests for gate decisions per event kind."""

    def test_manual_run_passes_both_gates(self) -> None:
        event = TriggerEvent(name="workflow_dispatch")
        assert evaluate_gate(event, TERRAFORM).passed
        assert evaluate_gate(event, DOCKER).passed

    def test_own_successful_completion_passes(self) -> None:
        assert evaluate_gate(_completed(TERRAFORM.workflow_name), TERRAFORM).passed

    def test_own_failed_completion_fails(self) -> None:
        decision = evaluate_gate(_completed(TERRAFORM.workflow_name, "failure"), TERRAFORM)
        assert not decision.passed
        assert "failure" in decision.reason

    def test_other_upstream_completion_consults_run_history(self) -> None:
        runs = FakeRunHistory({DOCKER.workflow_file: "success"})
        decision = evaluate_gate(_completed(TERRAFORM.workflow_name), DOCKER, runs)
        assert decision.passed
        assert runs.queries == [(DOCKER.workflow_file, "main")]

    def test_other_upstream_failed_last_run(self) -> None:
        runs = FakeRunHistory({DOCKER.workflow_file: "failure"})
        assert not evaluate_gate(_completed(TERRAFORM.workflow_name), DOCKER, runs).passed

    def test_pull_request_checks_base_branch_history(self) -> None:
        payload = {
            "ref": "refs/pull/7/merge",
            "pull_request": {"head": {"ref": "feature/k8s"}, "base": {"ref": "main"}},
        }
        runs = FakeRunHistory({TERRAFORM.workflow_file: "success"})
        decision = evaluate_gate(event_from_payload("pull_request", payload), TERRAFORM, runs)
        assert decision.passed
        assert runs.queries == [(TERRAFORM.workflow_file, "main")]

    def test_no_run_history_does_not_pass(self) -> None:
        decision = evaluate_gate(TriggerEvent(name="push", head_branch="main"), TERRAFORM, None)
        assert not decision.passed
        assert "no run history" in decision.reason

    def test_unrelated_event_does_not_pass(self) -> None:
        assert not evaluate_gate(TriggerEvent(name="schedule"), TERRAFORM).passed


@pytest.mark.unit
class TestVerifyStages:
    """Tests for verify-terraform and verify-docker."""

    def test_terraform_uses_triggering_run(self, no_wait) -> None:
        store = FakeArtifactStore({"terraform-outputs": terraform_artifact()})
        result = verify_terraform(_completed(TERRAFORM.workflow_name, run_id=7), store, retry=no_wait)
        assert result["success"] and not result["skipped"]
        assert result["outputs"].aks_cluster_name == "aks-prod"
        assert store.requests == [(TERRAFORM.workflow_file, "terraform-outputs", 7)]

    def test_terraform_reports_missing_outputs_without_failing(self, no_wait) -> None:
        partial = {"aks_cluster_name": {"value": "aks-prod"}}
        store = FakeArtifactStore({"terraform-outputs": terraform_artifact(partial)})
        result = verify_terraform(TriggerEvent(name="workflow_dispatch"), store, retry=no_wait)
        assert result["success"]
        assert "resolved 1/4" in result["message"]

    def test_terraform_missing_artifact_fails_after_retries(self, no_wait) -> None:
        store = FakeArtifactStore({})
        result = verify_terraform(TriggerEvent(name="workflow_dispatch"), store, retry=no_wait)
        assert result["success"] is False
        assert len(store.requests) == 3

    def test_terraform_skipped_when_gate_closed(self, no_wait) -> None:
        store = FakeArtifactStore({"terraform-outputs": terraform_artifact()})
        result = verify_terraform(_completed(TERRAFORM.workflow_name, "failure"), store, retry=no_wait)
        assert result["skipped"] and result["success"]
        assert store.requests == []

    def test_docker_manual_run_uses_fallback(self, no_wait) -> None:
        store = FakeArtifactStore({"image-references": image_artifact()})
        result = verify_docker(TriggerEvent(name="workflow_dispatch"), store, retry=no_wait, **FALLBACK)
        assert result["images"].source == "fallback"
        assert store.requests == []

    def test_docker_completion_reads_artifact(self, no_wait) -> None:
        store = FakeArtifactStore({"image-references": image_artifact(api="r/api:sha1", frontend="r/front:sha1")})
        result = verify_docker(_completed(DOCKER.workflow_name), store, retry=no_wait, **FALLBACK)
        assert result["images"].api == "r/api:sha1"
        assert result["images"].source == "artifact"

    def test_docker_missing_artifact_falls_back(self, no_wait) -> None:
        result = verify_docker(_completed(DOCKER.workflow_name), FakeArtifactStore({}), retry=no_wait, **FALLBACK)
        assert result["success"]
        assert result["images"].source == "fallback"

    def test_both_gates_run_together(self, no_wait) -> None:
        store = FakeArtifactStore({
            "terraform-outputs": terraform_artifact(),
            "image-references": image_artifact(),
        })
        runs = FakeRunHistory({TERRAFORM.workflow_file: "success", DOCKER.workflow_file: "success"})
        event = TriggerEvent(name="push", head_branch="main")
        terraform, docker = verify_upstreams(event, store, runs=runs, retry=no_wait, **FALLBACK)
        assert terraform["outputs"].container_name == "qr-images"
        assert docker["images"].source == "artifact"
