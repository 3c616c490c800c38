"""CLI entrypoint for topic seeding, pipeline runs and latest-update queries."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List

from core import Topic
from utils.exceptions import ConfigurationError
from utils.logger import get_logger, setup_logger


def _dump(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _load_topics(path: str) -> List[Topic]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("topics", [raw])
    return [Topic.model_validate(item) for item in raw]


async def _run(args: argparse.Namespace) -> int:
    from orchestrator import build_orchestrator
    from storage import get_store

    store = get_store()

    if args.command == "seed-topics":
        topics = [await store.upsert_topic(topic) for topic in _load_topics(args.file)]
        _dump({"seeded": [topic.id for topic in topics]})
        return 0

    if args.command == "latest":
        updates = await store.list_latest_updates(topic_id=args.topic_id or None)
        _dump([update.model_dump(mode="json") for update in updates])
        return 0

    orchestrator = build_orchestrator(store=store)
    try:
        if args.command == "run-all":
            summary = await orchestrator.run_all_topics()
            _dump(summary.model_dump(mode="json"))
            return 0 if not summary.failed else 1

        topic = await store.get_topic(args.topic_id)
        if topic is None:
            _dump({"error": f"unknown topic: {args.topic_id}"})
            return 2

        if args.command == "run-topic":
            summary = await orchestrator.run_all_topics(topics=[topic])
            _dump(summary.model_dump(mode="json"))
            return 0 if not summary.failed else 1

        if args.command == "verify":
            configs = topic.to_configs()
            if not configs:
                _dump({"error": f"topic {topic.id} has no search profile"})
                return 2
            result = await orchestrator.verify_topic(configs[0])
            _dump({"match": result.model_dump(mode="json") if result else None})
            return 0
    finally:
        await orchestrator.search.provider.close()
        await orchestrator.extraction.llm.aclose()
        await store.close()

    return 2


def main() -> None:
    parser = argparse.ArgumentParser(description="Regulatory update monitor CLI")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed-topics", help="Insert or replace topics from a JSON file")
    seed.add_argument("--file", required=True)

    run_topic = sub.add_parser("run-topic", help="Run every search profile of one topic")
    run_topic.add_argument("--topic-id", required=True)

    sub.add_parser("run-all", help="Run every active topic")

    latest = sub.add_parser("latest", help="List current latest verified updates")
    latest.add_argument("--topic-id", default="")

    verify = sub.add_parser("verify", help="Check the newest article against the topic's primary source")
    verify.add_argument("--topic-id", required=True)

    args = parser.parse_args()
    setup_logger("", level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        code = asyncio.run(_run(args))
    except ConfigurationError as exc:
        get_logger("regwatch.cli").error(f"Configuration error: {exc}")
        _dump({"error": str(exc)})
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
