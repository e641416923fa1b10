from __future__ import annotations

import json
from pathlib import Path

from linear_workflow.install.state import InstallationState


def test_save_writes_camel_case_and_load_round_trips(tmp_path: Path):
    state_file = tmp_path / ".linear-workflow-state.json"
    state = InstallationState(state_file)
    state.start_installation()
    state.complete_phase("Create configuration file", {"files": [".linear-workflow.json"]})
    state.track_backup(tmp_path / "a.yml", tmp_path / "a.yml.backup")
    state.track_backup(tmp_path / "a.yml", tmp_path / "a.yml.backup")
    state.track_file_created(tmp_path / "b.md")
    state.track_directory_created(tmp_path / "docs")
    state.save()

    raw = json.loads(state_file.read_text(encoding="utf-8"))
    assert raw["inProgress"] is True
    assert raw["completedPhases"][0]["name"] == "Create configuration file"
    assert raw["completedPhases"][0]["files"] == [".linear-workflow.json"]
    assert "completedAt" in raw["completedPhases"][0]
    assert raw["filesCreated"] == [str(tmp_path / "b.md")]
    assert raw["directoriesCreated"] == [str(tmp_path / "docs")]
    assert len(raw["backups"]) == 1

    reloaded = InstallationState(state_file)
    assert reloaded.load()
    assert reloaded.in_progress
    assert reloaded.snapshot.backups[0].original == tmp_path / "a.yml"
    assert reloaded.snapshot.files_created == [tmp_path / "b.md"]
    assert reloaded.completed_phases[0].model_extra == {"files": [".linear-workflow.json"]}


def test_load_missing_file(tmp_path: Path):
    state = InstallationState(tmp_path / "missing.json")
    assert state.load() is False
    assert not state.in_progress


def test_load_garbage_is_treated_as_absent(tmp_path: Path):
    state_file = tmp_path / "state.json"
    state_file.write_text("{not json", encoding="utf-8")
    state = InstallationState(state_file)
    assert state.load() is False

    state_file.write_text('{"inProgress": "maybe"}', encoding="utf-8")
    assert state.load() is False
    assert state.snapshot.completed_phases == []


def test_clear_removes_file_and_tolerates_absence(tmp_path: Path):
    state_file = tmp_path / "state.json"
    state = InstallationState(state_file)
    state.start_installation()
    state.save()
    assert state_file.exists()

    state.clear()
    state.clear()
    assert not state_file.exists()


def test_in_memory_state_never_touches_disk(tmp_path: Path):
    state_file = tmp_path / "state.json"
    state = InstallationState(state_file, persist=False)
    state.start_installation()
    state.complete_phase("Create installation branch")
    state.save()

    assert not state_file.exists()
    assert [p.name for p in state.completed_phases] == ["Create installation branch"]

    state_file.write_text("keep", encoding="utf-8")
    state.clear()
    assert state_file.read_text(encoding="utf-8") == "keep"


def test_fail_phase_records_error(tmp_path: Path):
    state = InstallationState(tmp_path / "state.json")
    state.start_installation()
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        state.fail_phase("Install git hooks", e)

    assert state.failed_phase == "Install git hooks"
    assert state.snapshot.error is not None
    assert state.snapshot.error.message == "boom"
    assert "RuntimeError" in (state.snapshot.error.stack or "")


def test_complete_marks_installation_finished(tmp_path: Path):
    state = InstallationState(tmp_path / "state.json")
    state.start_installation()
    state.complete()
    assert not state.in_progress
    assert state.snapshot.phase == "completed"
