"""Cogniplug Quickstart: your first orchestration session

This script loads the bundled example plugins, runs a handful of reasoning
rounds against a mathematics problem, and feeds outcomes back so you can watch
effectiveness scores move and admission decisions change.

Run with:
    python examples/quickstart.py

Watch as the orchestrator:
- Asks every plugin whether it wants to act on the current context
- Ranks candidates by priority weighted by learned effectiveness
- Admits a conflict-free set within the concurrency cap and load budget
- Learns from each round's outcome
"""

import asyncio

from cogniplug import Context, OrchestratorConfig, Outcome, create_orchestrator


async def main():
    # Two plugins per round, total cognitive load at most 0.6
    config = OrchestratorConfig(max_concurrent_plugins=2, resource_budget=0.6)
    orchestrator = create_orchestrator(config, plugin_dirs=["plugins"])

    print("Cogniplug Session Started")
    print(f"  Plugins: {', '.join(orchestrator.registry.plugin_ids())}")
    print()

    thoughts = [
        "The answer is obviously 42",
        "Maybe I should check the edge cases",
        "I am still stuck on the proof",
        "Still stuck, nothing works",
        "A different angle might help",
    ]

    for round_number, thought in enumerate(thoughts, start=1):
        context = Context(
            complexity=7.0,
            domain="mathematics",
            confidence_level=0.35,
            current_thought=thought,
            history=tuple(thoughts[: round_number - 1]),
        )
        result = await orchestrator.orchestrate(context)

        print(f"Round {round_number}: {thought!r}")
        for plugin_id, score in result.ranking:
            marker = "+" if plugin_id in result.admitted else " "
            print(f"  {marker} {plugin_id:<22} effective priority {score:6.1f}")
        for intervention in result.interventions:
            print(f"    -> {intervention.content}")

        # Pretend the later rounds went better than the first ones
        outcome = Outcome.SUCCESS if round_number > 2 else Outcome.PARTIAL
        await orchestrator.provide_feedback(result, outcome, 0.4 + 0.1 * round_number, context)
        print()

    print("Learned effectiveness:")
    for key, score in sorted(orchestrator.learning.effectiveness_scores().items()):
        print(f"  {key}: {score:.3f}")

    await orchestrator.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
