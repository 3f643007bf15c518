#!/usr/bin/env python3
"""
factchat - streaming chat assistant with a hidden fact-check round.
"""

import argparse
import asyncio
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep factchat imports lazy (inside functions) so `--help` works without the LLM stack installed.
#


def chat_once(message: str) -> int:
    """Stream one answer for a single user message to stdout."""
    from factchat.chat.orchestrator import build_orchestrator
    from factchat.chat.types import ChatMessage
    from factchat.llm.client import GenerationError

    def _write(text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    orchestrator = build_orchestrator()
    try:
        asyncio.run(orchestrator.stream_chat([ChatMessage(role="user", content=message)], _write))
    except GenerationError as e:
        print(f"\n\nError: Failed to generate response ({e.code})", file=sys.stderr)
        return 1
    print()
    return 0


def fact_check_once(query: str) -> int:
    """Run the fact-check sub-call on its own and print the result."""
    from factchat.chat.fact_check import FactChecker
    from factchat.llm.client_streaming import get_transport_from_env

    checker = FactChecker(get_transport_from_env())
    print(asyncio.run(checker.fact_check(query)))
    return 0


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Streaming chat assistant with fact-checking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the HTTP server (POST /api/chat)
  python main.py --serve --port 8080

  # Ask one question and stream the answer
  python main.py --chat "What year did the Great Exhibition open?"

  # Run only the fact-check sub-call
  python main.py --fact-check "The Great Exhibition opened in 1851"
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the chat HTTP server")
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Server listen port (default: 8080)")
    parser.add_argument("--chat", metavar="MESSAGE", help="Send one user message and stream the answer")
    parser.add_argument("--fact-check", metavar="QUERY", help="Fact-check a claim with the fact-check prompt")

    args = parser.parse_args()

    try:
        if args.serve:
            from factchat.api.server import run as run_server

            run_server(host=args.host, port=args.port)
            return

        if args.chat:
            sys.exit(chat_once(args.chat))

        if args.fact_check:
            sys.exit(fact_check_once(args.fact_check))

        # No arguments provided
        parser.print_help()

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
