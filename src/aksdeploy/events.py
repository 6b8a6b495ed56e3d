"""Trigger event parsing.

Reads the CI provider's event payload and answers the two questions the
gates need: was this a manual run, and did a named upstream workflow just
complete successfully.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import MalformedArtifactError

MANUAL_EVENT = "workflow_dispatch"
WORKFLOW_RUN_EVENT = "workflow_run"
PUSH_EVENT = "push"
PULL_REQUEST_EVENT = "pull_request"

SIMULATE_INPUT = "simulate_deployment"


@dataclass(frozen=True)
class TriggerEvent:
    """A triggering event, reduced to the fields the gates use."""

    name: str
    workflow_name: str | None = None
    conclusion: str | None = None
    run_id: int | None = None
    head_branch: str | None = None
    inputs: dict[str, Any] = field(default_factory=dict)

    @property
    def is_manual(self) -> bool:
        return self.name == MANUAL_EVENT

    @property
    def is_manifest_change(self) -> bool:
        return self.name in (PUSH_EVENT, PULL_REQUEST_EVENT)

    def completed_successfully(self, workflow_name: str) -> bool:
        """Return True if this is a successful completion of `workflow_name`."""
        return (
            self.name == WORKFLOW_RUN_EVENT
            and self.workflow_name == workflow_name
            and self.conclusion == "success"
        )

    def simulate(self, default: bool = True) -> bool:
        """Resolve the simulation flag for this event.

        Only manual runs carry the input; anything else returns `default`.
        """
        if not self.is_manual:
            return default
        return parse_bool(self.inputs.get(SIMULATE_INPUT), default=default)


def parse_bool(value: Any, *, default: bool) -> bool:
    """Parse a dispatch input that may arrive as a bool or a string.

    Args:
        value: Raw input value (bool, "true"/"false" in any case, or None).
        default: Value returned when the input is absent.

    Returns:
        The parsed boolean.

    Raises:
        ValueError: If the value is a string other than true/false.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"Expected 'true' or 'false', got {value!r}")


def event_from_payload(name: str, payload: dict[str, Any]) -> TriggerEvent:
    """Build a TriggerEvent from an event name and its JSON payload."""
    workflow_run = payload.get("workflow_run") or {}
    inputs = payload.get("inputs") or {}
    head_branch = workflow_run.get("head_branch")
    if head_branch is None and name == PULL_REQUEST_EVENT:
        # `ref` is refs/pull/N/merge; the deploy targets the base branch.
        base = (payload.get("pull_request") or {}).get("base") or {}
        head_branch = base.get("ref") or None
    if head_branch is None:
        ref = payload.get("ref") or ""
        head_branch = ref.removeprefix("refs/heads/") or None
    run_id = workflow_run.get("id")
    return TriggerEvent(
        name=name,
        workflow_name=workflow_run.get("name"),
        conclusion=workflow_run.get("conclusion"),
        run_id=int(run_id) if run_id is not None else None,
        head_branch=head_branch,
        inputs=dict(inputs),
    )


def load_event(name: str, payload_path: Path | None) -> TriggerEvent:
    """Load a TriggerEvent from the CI provider's event payload file.

    Args:
        name: Event name (e.g. "workflow_run").
        payload_path: Path to the JSON payload. A missing path yields an
            event with no payload fields.

    Returns:
        Parsed TriggerEvent.

    Raises:
        MalformedArtifactError: If the payload file is not valid JSON.
    """
    if payload_path is None or not payload_path.exists():
        return TriggerEvent(name=name)
    try:
        payload = json.loads(payload_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedArtifactError(f"Event payload {payload_path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedArtifactError(f"Event payload {payload_path} must be a JSON object")
    return event_from_payload(name, payload)
