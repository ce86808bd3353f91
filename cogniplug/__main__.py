"""CLI for running orchestration rounds against a plugin directory.

Usage:
    python -m cogniplug run --plugins plugins/ --rounds 10 --domain programming
    python -m cogniplug run --plugins plugins/ --outcome failure --impact 0.1
    python -m cogniplug run --plugins plugins/ --checkpoint-dir data/learning
    python -m cogniplug plugins --plugins plugins/
    python -m cogniplug checkpoints --checkpoint-dir data/learning
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from cogniplug.config import OrchestratorConfig
from cogniplug.errors import CogniplugError
from cogniplug.factory import create_orchestrator
from cogniplug.orchestration.orchestrator import PluginOrchestrator
from cogniplug.persistence.checkpoint import CheckpointManager
from cogniplug.types import Context, Outcome, Urgency


async def _run_rounds(orchestrator: PluginOrchestrator, args: argparse.Namespace) -> None:
    checkpoints = CheckpointManager(args.checkpoint_dir) if args.checkpoint_dir else None
    if checkpoints is not None:
        restored = checkpoints.restore(orchestrator.learning)
        if restored is not None:
            print(f"Restored learning state from round {restored}")

    history: list[str] = []
    for round_index in range(1, args.rounds + 1):
        context = Context(
            complexity=args.complexity,
            domain=args.domain,
            urgency=Urgency(args.urgency),
            history=tuple(history),
            confidence_level=args.confidence,
            current_thought=args.thought,
        )
        result = await orchestrator.orchestrate(context)
        print(
            f"Round {round_index}: admitted {', '.join(result.admitted) or '-'}"
            f" | skipped {len(result.skipped)} | failures {len(result.failures)}"
            f" | {result.duration_ms:.1f}ms"
        )
        for intervention in result.interventions:
            print(f"  [{intervention.plugin_id}] {intervention.content}")

        scores = await orchestrator.provide_feedback(
            result, Outcome(args.outcome), args.impact, context
        )
        for plugin_id, score in sorted(scores.items()):
            print(f"  effectiveness {plugin_id}: {score:.3f}")
        history.append(f"round {round_index}")

        if checkpoints is not None:
            checkpoints.auto_checkpoint(orchestrator.learning, orchestrator.rounds_completed)

    if checkpoints is not None:
        path = checkpoints.save(
            orchestrator.learning, round_number=orchestrator.rounds_completed, label="final"
        )
        print(f"Learning state saved to {path}")

    summary = orchestrator.performance_summary()
    timing = summary["timing"]
    if timing:
        print(
            f"\n{timing['total_rounds']} rounds, avg {timing['avg_round_ms']:.1f}ms, "
            f"slowest {timing['slowest_round_ms']:.1f}ms"
        )
    await orchestrator.shutdown()


def cmd_run(args: argparse.Namespace) -> None:
    """Load plugins and run feedback-driven rounds."""
    config = OrchestratorConfig(
        max_concurrent_plugins=args.max_plugins,
        resource_budget=None if args.budget <= 0 else args.budget,
    )
    try:
        orchestrator = create_orchestrator(config, plugin_dirs=args.plugins)
    except CogniplugError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    if not len(orchestrator.registry):
        print(f"No plugins loaded from {', '.join(args.plugins)}")
        sys.exit(1)

    asyncio.run(_run_rounds(orchestrator, args))


def cmd_plugins(args: argparse.Namespace) -> None:
    """List the plugins a directory registers, with their conflicts."""
    orchestrator = create_orchestrator(plugin_dirs=args.plugins)
    registry = orchestrator.registry
    if not len(registry):
        print("No plugins found")
        return
    for plugin in registry.all_plugins():
        meta = plugin.metadata
        conflicts = ", ".join(sorted(registry.conflicts_with(plugin.plugin_id))) or "-"
        print(f"{meta.plugin_id:<24} priority {meta.priority:>5.1f}  load {meta.resource_cost:.2f}")
        print(f"  {meta.description}")
        print(f"  conflicts: {conflicts}")


def cmd_checkpoints(args: argparse.Namespace) -> None:
    """List saved learning checkpoints."""
    manager = CheckpointManager(args.checkpoint_dir)
    checkpoints = manager.list_checkpoints()
    if not checkpoints:
        print("No checkpoints found")
        return
    for checkpoint in checkpoints:
        label = checkpoint["label"] or "-"
        print(f"round {checkpoint['round']:>6}  {label:<8} {checkpoint['path']}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="cogniplug", description="Adaptive plugin orchestration"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run: orchestrate rounds with fixed feedback
    run_parser = subparsers.add_parser("run", help="Run orchestration rounds")
    run_parser.add_argument(
        "--plugins", nargs="+", default=["plugins"], help="Plugin directories"
    )
    run_parser.add_argument("--rounds", type=int, default=5, help="Number of rounds")
    run_parser.add_argument("--complexity", type=float, default=6.0, help="Context complexity")
    run_parser.add_argument("--domain", default=None, help="Context domain")
    run_parser.add_argument(
        "--urgency", choices=[u.value for u in Urgency], default="medium", help="Context urgency"
    )
    run_parser.add_argument("--confidence", type=float, default=0.4, help="Confidence level")
    run_parser.add_argument("--thought", default=None, help="Current thought text")
    run_parser.add_argument(
        "--outcome", choices=[o.value for o in Outcome], default="success", help="Reported outcome"
    )
    run_parser.add_argument("--impact", type=float, default=0.8, help="Reported impact score")
    run_parser.add_argument("--max-plugins", type=int, default=3, help="Concurrency cap")
    run_parser.add_argument(
        "--budget", type=float, default=1.0, help="Cognitive load budget (0 = unbounded)"
    )
    run_parser.add_argument("--checkpoint-dir", default=None, help="Persist learning state here")

    # plugins: list what a directory registers
    plugins_parser = subparsers.add_parser("plugins", help="List loaded plugins")
    plugins_parser.add_argument(
        "--plugins", nargs="+", default=["plugins"], help="Plugin directories"
    )

    # checkpoints: list saved learning state
    checkpoints_parser = subparsers.add_parser("checkpoints", help="List learning checkpoints")
    checkpoints_parser.add_argument(
        "--checkpoint-dir", default="data/checkpoints", help="Checkpoint directory"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "run": cmd_run,
        "plugins": cmd_plugins,
        "checkpoints": cmd_checkpoints,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
