"""Simple CLI REPL for querying the rice market backend.

Usage:
    python -m src.cli

Type ``/mode direct`` or ``/mode orchestrated`` to switch query mode.
"""

import asyncio
import logging

from src.clients.health import SERVICE_LABELS, HealthGate
from src.query.client import MODE_SERVICES, QueryClient, QueryMode, QueryView
from src.query.formatting import format_query_result

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)


async def _ask(view: QueryView, client: QueryClient, question: str, mode: QueryMode) -> None:
    await view.run(client, question, mode)
    if view.error:
        print(f"\nError: {view.error}\n")
        return
    if view.warning:
        print(f"\nWarning: {view.warning}")
    if view.result is not None:
        print(f"\n{format_query_result(view.result)}\n")


def main() -> None:
    """Run the interactive CLI loop."""
    print("Rice Market Query (type 'quit' or Ctrl+C to exit)")
    print("=" * 50)

    gate = HealthGate()
    for health in asyncio.run(gate.poll_all()):
        print(f"  {SERVICE_LABELS[health.name]}: {health.state}")

    client = QueryClient(health_gate=gate)
    view = QueryView()
    mode = QueryMode.DIRECT
    print(f"\nMode: {mode} (use /mode direct|orchestrated)\n")

    while True:
        try:
            question = input(f"[{mode}] You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not question:
            continue
        if question.lower() in ("quit", "exit", "q"):
            print("Goodbye!")
            break
        if question.startswith("/mode"):
            requested = question.removeprefix("/mode").strip()
            try:
                mode = QueryMode(requested)
            except ValueError:
                print(f"Unknown mode {requested!r}; expected direct or orchestrated")
                continue
            print(f"Mode: {mode} ({SERVICE_LABELS[MODE_SERVICES[mode]]}: {gate.status(MODE_SERVICES[mode])})")
            continue

        asyncio.run(_ask(view, client, question, mode))


if __name__ == "__main__":
    main()
