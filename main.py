"""Run one pipeline from the shell: ``python main.py "query"``."""

from __future__ import annotations

import argparse
import asyncio

from core import PipelineEvent, PipelineStatus
from orchestrator import PipelineOrchestrator
from utils.logger import console, setup_logger

DEFAULT_QUERY = "B2B SaaS tools for small businesses"


def _print_event(event: PipelineEvent) -> None:
    style = {
        PipelineStatus.COMPLETED: "green",
        PipelineStatus.FAILED: "red",
    }.get(event.status, "cyan")
    console.print(f"[{style}][{event.phase.value}][/{style}] {event.message}")


async def _run(query: str) -> int:
    orchestrator = PipelineOrchestrator()
    orchestrator.on_event(_print_event)
    try:
        run = await orchestrator.run({"query": query})
    finally:
        await orchestrator.close()

    if run.status != PipelineStatus.COMPLETED:
        return 1
    console.rule("Results")
    console.print_json(data=[idea.to_json_dict() for idea in run.results])
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Ideator pipeline")
    parser.add_argument("query", nargs="*", help="market or topic to explore")
    args = parser.parse_args()

    setup_logger()
    query = " ".join(args.query).strip() or DEFAULT_QUERY
    raise SystemExit(asyncio.run(_run(query)))


if __name__ == "__main__":
    main()
