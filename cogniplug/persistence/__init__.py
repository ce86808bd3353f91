"""Persistence package: save/load learned state between processes."""

from cogniplug.persistence.checkpoint import CheckpointManager

__all__ = ["CheckpointManager"]
