from __future__ import annotations

import re
from pathlib import Path

import pytest
from pydantic import ValidationError

from agent_workflow_orchestrator.orchestrator.storage.workflow_store import (
    WorkflowAlreadyExists,
    WorkflowNotFound,
    WorkflowStore,
)

PAYLOAD = {
    "name": "Release notes",
    "nodes": [{"id": "start", "type": "transform", "config": {}, "nextNodes": []}],
    "startNode": "start",
}


def test_create_assigns_id_and_timestamps(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")

    workflow = store.create(PAYLOAD)

    assert re.fullmatch(r"wf-\d+", workflow.id)
    assert workflow.created is not None
    assert workflow.created == workflow.updated
    assert store.get(workflow.id) == workflow
    assert [w.id for w in store.list()] == [workflow.id]


def test_create_keeps_explicit_id(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")

    workflow = store.create({**PAYLOAD, "id": "wf-release"})

    assert workflow.id == "wf-release"
    with pytest.raises(WorkflowAlreadyExists):
        store.create({**PAYLOAD, "id": "wf-release"})


def test_create_rejects_invalid_payload(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")

    with pytest.raises(ValidationError):
        store.create({"name": "No nodes"})
    assert store.list() == []


def test_update_is_partial(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    original = store.create({**PAYLOAD, "id": "wf-release", "description": "v1"})

    updated = store.update("wf-release", {"name": "Release notes v2", "id": "ignored"})

    assert updated.id == "wf-release"
    assert updated.name == "Release notes v2"
    assert updated.description == "v1"
    assert updated.nodes == original.nodes
    assert updated.created == original.created
    assert updated.updated is not None
    assert store.get("wf-release") == updated


def test_update_missing_workflow(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")

    with pytest.raises(WorkflowNotFound) as excinfo:
        store.update("wf-nope", {"name": "x"})
    assert str(excinfo.value) == "Workflow wf-nope not found"


def test_delete(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    store.create({**PAYLOAD, "id": "wf-release"})

    store.delete("wf-release")

    assert store.get("wf-release") is None
    with pytest.raises(WorkflowNotFound):
        store.delete("wf-release")
