"""
Main entry point — parse args, load config, build the agent, run one task.
"""

from __future__ import annotations
import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional

from .config.settings import Config, load_config, model_configuration_from
from .core.agent import Agent, AgentConfig, TaskInput, TaskMetadata
from .core.errors import HatarakuError
from .core.providers import ProviderFactory
from .core.structured_logger import setup_structured_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hataraku",
        description="Hataraku — run a single agent task from the command line",
    )
    parser.add_argument(
        "task",
        help="Task for the agent to perform",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to config YAML file",
        default=None,
    )
    parser.add_argument(
        "-p", "--provider",
        help=f"Model provider ({', '.join(ProviderFactory.available())})",
        default=None,
    )
    parser.add_argument(
        "-m", "--model",
        help="Model id to use",
        default=None,
    )
    parser.add_argument(
        "--workspace",
        help="Working directory for the agent's tools",
        default=None,
    )
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Print the result as it is generated",
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=None,
        help="Maximum model turns before giving up",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    )
    return parser.parse_args(argv)


def build_agent(config: Config) -> Agent:
    """Agent from configuration; credentials are taken from the config only."""
    workspace = os.path.abspath(os.path.expanduser(config.get("agent.workspace_dir", ".")))
    return Agent(AgentConfig(
        model=model_configuration_from(config),
        name=config.get("agent.name", "hataraku"),
        role=config.get("agent.role"),
        custom_instructions=config.get("agent.custom_instructions"),
        max_turns=config.get("agent.max_turns", 25),
        working_directory=workspace,
    ))


def format_usage(metadata: TaskMetadata) -> str:
    usage = metadata.usage
    return (
        f"[tokens in={usage.tokens_in} out={usage.tokens_out} "
        f"cache_reads={usage.cache_reads} cache_writes={usage.cache_writes} "
        f"cost=${usage.cost:.4f} tool_calls={len(metadata.tool_calls)}]"
    )


async def run_task(agent: Agent, content: str, stream: bool = False) -> TaskMetadata:
    """Run one task, printing the result to stdout."""
    failures = await agent.initialize()
    for failure in failures:
        print(f"Warning: {failure.message}", file=sys.stderr)

    if stream:
        result = await agent.task(TaskInput(content=content, stream=True))
        async for chunk in result.stream:
            print(chunk, end="", flush=True)
        print()
        return await result.metadata

    result = await agent.task(TaskInput(content=content))
    if isinstance(result.content, str):
        print(result.content)
    else:
        print(json.dumps(result.content, indent=2))
    return result.metadata


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)

    # Logging level
    if args.verbose >= 2:
        log_level = "DEBUG"
    elif args.verbose >= 1:
        log_level = "INFO"
    else:
        log_level = "WARNING"
    setup_structured_logging(level=log_level)

    try:
        config = load_config(args.config)

        # Override config with CLI args
        if args.provider:
            config.set("llm.provider", args.provider)
        if args.model:
            config.set("llm.model", args.model)
        if args.workspace:
            config.set("agent.workspace_dir", args.workspace)
        if args.max_turns is not None:
            config.set("agent.max_turns", args.max_turns)

        agent = build_agent(config)
        logger.info(f"Running task with {agent!r}")
        metadata = asyncio.run(run_task(agent, args.task, stream=args.stream))
    except HatarakuError as e:
        print(f"Error: {e.full_message()}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        # Provider/network errors arrive unchanged from the agent
        logger.debug("Task failed", exc_info=True)
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)

    print(format_usage(metadata), file=sys.stderr)


if __name__ == "__main__":
    main()
