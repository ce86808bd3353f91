"""Checkpoint management for learning state: save, load, auto-checkpoint, and pruning.

Provides atomic writes and automatic checkpoint lifecycle management.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cogniplug.errors import SerializationError

if TYPE_CHECKING:
    from cogniplug.learning.engine import AdaptiveLearningEngine

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT = 1


class CheckpointManager:
    """Manages checkpoint lifecycle for an AdaptiveLearningEngine."""

    def __init__(
        self,
        checkpoint_dir: str = "data/checkpoints",
        auto_interval: int = 10,
        max_checkpoints: int = 10,
    ):
        """Initialize checkpoint manager.

        Args:
            checkpoint_dir: Directory to store checkpoints
            auto_interval: Rounds between auto-checkpoints (0 = disabled)
            max_checkpoints: Maximum number of checkpoints to keep
        """
        self._dir = Path(checkpoint_dir)
        self._interval = auto_interval
        self._max = max_checkpoints
        self._last_checkpoint_round = 0

        self._dir.mkdir(parents=True, exist_ok=True)

    def save(self, engine: AdaptiveLearningEngine, round_number: int = 0, label: str = "") -> str:
        """Save the engine's exported state with an atomic write.

        Args:
            engine: Learning engine to save
            round_number: Rounds completed so far, used for ordering
            label: Optional label for the checkpoint

        Returns:
            Path to saved checkpoint file
        """
        data = {
            "format": CHECKPOINT_FORMAT,
            "round": round_number,
            "saved_at": datetime.now(UTC).isoformat(),
            "learning": engine.export_state(),
        }

        # Filename: {round:06d}_{label}_{timestamp}.json
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%f")
        label_part = f"{label}_" if label else ""
        filename = f"{round_number:06d}_{label_part}{timestamp}.json"
        filepath = self._dir / filename

        temp_path = self._dir / f".{filename}.tmp"
        try:
            with open(temp_path, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(temp_path, filepath)
            logger.debug(f"Saved learning checkpoint {filepath}")
            return str(filepath)
        finally:
            if temp_path.exists():
                temp_path.unlink()

    def load(self, path: str) -> dict[str, Any]:
        """Read a checkpoint file.

        Returns:
            The checkpoint payload with keys format, round, saved_at, learning

        Raises:
            SerializationError: if the file is not a valid checkpoint
        """
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Checkpoint {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict) or data.get("format") != CHECKPOINT_FORMAT:
            raise SerializationError(f"Checkpoint {path} has an unsupported format")
        if "learning" not in data:
            raise SerializationError(f"Checkpoint {path} has no learning state")
        return data

    def restore(self, engine: AdaptiveLearningEngine, path: str | None = None) -> int | None:
        """Load a checkpoint (latest when path is None) into ``engine``.

        Returns:
            The checkpoint's round number, or None if there was nothing to restore
        """
        path = path or self.latest_checkpoint()
        if path is None:
            return None
        data = self.load(path)
        engine.import_state(data["learning"])
        self._last_checkpoint_round = int(data.get("round", 0))
        logger.info(f"Restored learning state from {path}")
        return self._last_checkpoint_round

    def auto_checkpoint(self, engine: AdaptiveLearningEngine, round_number: int) -> str | None:
        """Checkpoint if the interval is reached, then prune.

        Should be called after every round.
        """
        if self._interval <= 0:
            return None

        if round_number - self._last_checkpoint_round >= self._interval:
            filepath = self.save(engine, round_number=round_number, label="auto")
            self._last_checkpoint_round = round_number
            self._prune_old()
            return filepath

        return None

    def list_checkpoints(self) -> list[dict]:
        """List available checkpoints with metadata.

        Returns:
            List of checkpoint metadata dicts with keys:
            - path: str
            - round: int
            - timestamp: str
            - label: str
        """
        checkpoints = []

        for filepath in sorted(self._dir.glob("*.json")):
            if filepath.name.startswith("."):
                continue

            parts = filepath.stem.split("_")
            if len(parts) < 2:
                continue
            try:
                round_number = int(parts[0])
            except ValueError:
                continue

            checkpoints.append(
                {
                    "path": str(filepath),
                    "round": round_number,
                    "timestamp": parts[-1],
                    "label": "_".join(parts[1:-1]),
                }
            )

        return checkpoints

    def latest_checkpoint(self) -> str | None:
        """Path to the most recent checkpoint, or None if none exist."""
        checkpoints = self.list_checkpoints()
        if not checkpoints:
            return None

        checkpoints.sort(key=lambda c: (c["round"], c["timestamp"]), reverse=True)
        checkpoint_path: str | None = checkpoints[0]["path"]
        return checkpoint_path

    def _prune_old(self) -> None:
        """Remove oldest checkpoints beyond max_checkpoints."""
        checkpoints = self.list_checkpoints()

        if len(checkpoints) <= self._max:
            return

        checkpoints.sort(key=lambda c: (c["round"], c["timestamp"]))

        to_remove = checkpoints[: len(checkpoints) - self._max]
        for checkpoint in to_remove:
            Path(checkpoint["path"]).unlink()
