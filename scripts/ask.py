"""
CLI Entry Point: Ask the School Assistant

Usage:
    python scripts/ask.py "What is the principal's email?"
    python scripts/ask.py --interactive
    python scripts/ask.py --interactive --debug
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.common.config import Config
from src.common.logger import set_global_debug_mode, setup_logging
from src.services.assistant_service import AssistantService


def run_interactive(service: AssistantService, show_details: bool) -> None:
    """Chat loop; the conversation lives only for this session."""
    history = []
    print("Type your question (or 'quit' to exit).\n")
    while True:
        try:
            question = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if question.lower() in {"quit", "exit"}:
            break
        if not question:
            continue

        history.append({"role": "user", "content": question})
        result = service.process(history)
        history.append(result.to_message())

        print(f"\nAssistant: {result.reply}\n")
        if show_details:
            print(f"   [route={result.route} stage={result.stage} strategy={result.strategy} req={result.request_id}]\n")


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Ask the school assistant a question"
    )
    parser.add_argument(
        "question",
        nargs="?",
        help="Question to ask (omit with --interactive)"
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Start a multi-turn chat session"
    )
    parser.add_argument(
        "--knowledge",
        default=None,
        help="Knowledge base directory (overrides KNOWLEDGE_BASE_PATH)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging plus route/stage details for every answer"
    )

    args = parser.parse_args()

    if not args.question and not args.interactive:
        parser.error("provide a question or use --interactive")

    set_global_debug_mode(args.debug)
    setup_logging(level="DEBUG" if args.debug else Config.LOG_LEVEL, format=Config.LOG_FORMAT)

    if args.knowledge:
        Config.KNOWLEDGE_BASE_PATH = args.knowledge

    try:
        print("🔍 Validating configuration...")
        Config.validate()
        print("✅ Configuration valid")
        if args.debug:
            print(Config.summary())

        print(f"Loading knowledge from: {Config.KNOWLEDGE_BASE_PATH}")
        service = AssistantService.from_config()
        print(f"✓ Loaded {len(service.store.snapshot())} knowledge entries\n")

        if args.interactive:
            run_interactive(service, show_details=args.debug)
        else:
            result = service.process([{"role": "user", "content": args.question}])
            print(result.reply)
            if args.debug:
                print(f"\n[route={result.route} stage={result.stage} strategy={result.strategy} req={result.request_id}]")
            return 0 if result.success else 1

        return 0

    except (ValueError, FileNotFoundError) as e:
        print(f"\n❌ Configuration error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
