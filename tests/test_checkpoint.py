"""Tests for learning-state checkpoints."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cogniplug.errors import SerializationError
from cogniplug.learning import AdaptiveLearningEngine
from cogniplug.persistence import CheckpointManager
from cogniplug.types import Outcome

from tests.helpers import make_context, make_intervention


@pytest.fixture
def trained() -> AdaptiveLearningEngine:
    engine = AdaptiveLearningEngine()
    ctx = make_context()
    for _ in range(3):
        engine.record_outcome(ctx, [make_intervention("A")], Outcome.SUCCESS, 0.9)
    engine.record_intervention_patterns(ctx, [make_intervention("A", confidence=0.8)])
    return engine


@pytest.fixture
def manager(tmp_path) -> CheckpointManager:
    return CheckpointManager(str(tmp_path / "checkpoints"), auto_interval=5, max_checkpoints=2)


class TestCheckpointManager:
    def test_save_and_restore_round_trip(self, manager, trained):
        path = manager.save(trained, round_number=3, label="manual")

        restored = AdaptiveLearningEngine()
        assert manager.restore(restored, path) == 3
        assert restored.effectiveness_scores() == trained.effectiveness_scores()
        assert restored.intervention_pattern("A", "testing", 5).success_count == 1

    def test_save_leaves_no_temp_files(self, manager, trained, tmp_path):
        manager.save(trained)
        files = list((tmp_path / "checkpoints").iterdir())
        assert len(files) == 1
        assert not files[0].name.startswith(".")

    def test_list_checkpoints_parses_filenames(self, manager, trained):
        manager.save(trained, round_number=7, label="final")
        manager.save(trained, round_number=2)

        checkpoints = sorted(manager.list_checkpoints(), key=lambda c: c["round"])

        assert [c["round"] for c in checkpoints] == [2, 7]
        assert [c["label"] for c in checkpoints] == ["", "final"]

    def test_latest_checkpoint(self, manager, trained):
        assert manager.latest_checkpoint() is None
        manager.save(trained, round_number=1)
        newest = manager.save(trained, round_number=9)
        manager.save(trained, round_number=4)

        assert manager.latest_checkpoint() == newest

    def test_restore_without_checkpoints_returns_none(self, manager):
        assert manager.restore(AdaptiveLearningEngine()) is None

    def test_auto_checkpoint_respects_interval_and_prunes(self, manager, trained):
        saved = [manager.auto_checkpoint(trained, n) for n in range(1, 21)]

        assert [n for n, path in enumerate(saved, start=1) if path] == [5, 10, 15, 20]
        rounds = sorted(c["round"] for c in manager.list_checkpoints())
        assert rounds == [15, 20]

    def test_auto_checkpoint_disabled(self, tmp_path, trained):
        manager = CheckpointManager(str(tmp_path), auto_interval=0)
        assert manager.auto_checkpoint(trained, 100) is None

    def test_load_rejects_non_json(self, manager, tmp_path):
        bad = tmp_path / "checkpoints" / "000001_x.json"
        bad.write_text("{not json")
        with pytest.raises(SerializationError):
            manager.load(str(bad))

    def test_load_rejects_unknown_format(self, manager, tmp_path):
        bad = Path(tmp_path / "checkpoints" / "000001_x.json")
        bad.write_text(json.dumps({"format": 42, "learning": {}}))
        with pytest.raises(SerializationError):
            manager.load(str(bad))
