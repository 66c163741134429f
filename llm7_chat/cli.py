"""CLI entry point for llm7-chat.

Sends a single prompt to the LLM7 API and prints the reply, either whole or
streamed as it arrives. Configuration comes from LLM7_* environment
variables (a .env file is loaded), overridden by flags.

Entry point:
    llm7-chat [--model M] [--system S] [--stream] [--stop X ...] PROMPT
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from dotenv import load_dotenv
from langchain_core.messages import HumanMessage, SystemMessage

from llm7_chat.client import LLM7Client
from llm7_chat.config import LLM7Config
from llm7_chat.errors import LLM7Error

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llm7-chat",
        description="Send a prompt to the LLM7 chat completions API.",
    )
    parser.add_argument("prompt", help="User prompt ('-' reads stdin)")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--system", default=None, help="Optional system prompt")
    parser.add_argument("--model", default=None, help="Model identifier")
    parser.add_argument("--base-url", default=None, help="API base URL")
    parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature")
    parser.add_argument("--max-tokens", type=int, default=None, help="Max tokens to generate")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout (seconds)")
    parser.add_argument("--max-retries", type=int, default=None, help="Retry attempts for transient errors")
    parser.add_argument(
        "--stop", action="append", default=None,
        help="Stop sequence (repeatable)",
    )
    parser.add_argument(
        "--stream", action="store_true", help="Print deltas as they arrive"
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> LLM7Config:
    return LLM7Config.from_env(
        base_url=args.base_url,
        model_name=args.model,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
        timeout=args.timeout,
        max_retries=args.max_retries,
    )


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _cmd_chat(
    config: LLM7Config,
    prompt: str,
    system: Optional[str] = None,
    stop: Optional[list[str]] = None,
    stream: bool = False,
) -> int:
    """Run one completion. Returns exit code."""
    messages = []
    if system:
        messages.append(SystemMessage(content=system))
    messages.append(HumanMessage(content=prompt))
    logger.debug(f"Sending {len(messages)} message(s) to {config.model_name} at {config.base_url}")

    async with LLM7Client(config) as client:
        try:
            if stream:
                async for delta in client.stream_completion(messages, stop=stop):
                    sys.stdout.write(delta.text)
                    sys.stdout.flush()
                sys.stdout.write("\n")
            else:
                print(await client.complete(messages, stop=stop))
        except LLM7Error as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    return 0


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    load_dotenv()

    prompt = sys.stdin.read() if args.prompt == "-" else args.prompt
    if not prompt.strip():
        print("Error: empty prompt", file=sys.stderr)
        sys.exit(1)

    code = asyncio.run(_cmd_chat(
        config=_config_from_args(args),
        prompt=prompt,
        system=args.system,
        stop=args.stop,
        stream=args.stream,
    ))
    sys.exit(code)


if __name__ == "__main__":
    main()
