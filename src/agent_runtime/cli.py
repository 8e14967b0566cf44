"""
Command-line interface for agent-runtime.
"""

import argparse
import asyncio
import sys
import uuid

import structlog

from .config import Settings, get_settings

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

DEFAULT_INSTRUCTION = "You are a helpful assistant."
EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit"}


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="agent-runtime",
        description="agent-runtime - run tool-using LLM agents",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    chat_parser = subparsers.add_parser("chat", help="Chat with an agent in the terminal")
    chat_parser.add_argument("--stream", action="store_true", help="Stream model output as it arrives")
    chat_parser.add_argument("--instruction", default=DEFAULT_INSTRUCTION, help="System instruction for the agent")

    subparsers.add_parser("config", help="Show configuration")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "chat":
        asyncio.run(chat(args.instruction, args.stream))
    elif args.command == "config":
        show_config()
    else:
        parser.print_help()


def build_runner(settings: Settings, instruction: str, stream: bool):
    """Wire an LLM agent and an in-memory runner from settings."""
    from .agents import LlmAgent, StreamingMode
    from .compaction import LLMEventSummarizer
    from .llm import create_llm
    from .runners import InMemoryRunner

    llm = create_llm(settings.get_llm_config(), settings=settings)
    summarizer = LLMEventSummarizer(llm) if settings.compaction_enabled else None

    run_config = settings.get_run_config(summarizer=summarizer)
    if stream:
        run_config.streaming_mode = StreamingMode.SSE

    agent = LlmAgent(name="assistant", llm=llm, instruction=instruction)
    return InMemoryRunner(agent, app_name=settings.app_name, run_config=run_config)


async def chat(instruction: str, stream: bool) -> None:
    """Interactive chat loop."""
    settings = get_settings()
    runner = build_runner(settings, instruction, stream)
    user_id = "cli"
    session_id = str(uuid.uuid4())

    logger.info("Starting chat", provider=settings.default_provider, model=settings.default_model, stream=stream)
    print("Type 'exit' to quit.\n")

    while True:
        try:
            message = await asyncio.to_thread(input, "you> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        message = message.strip()
        if not message:
            continue
        if message.lower() in EXIT_COMMANDS:
            break

        print("agent> ", end="", flush=True)
        async for event in runner.run(user_id, session_id, message):
            if event.function_calls:
                for call in event.function_calls:
                    print(f"[calling {call.name}]", end=" ", flush=True)
            elif event.partial:
                if event.text:
                    print(event.text, end="", flush=True)
            elif not stream and event.is_final_response() and event.text:
                print(event.text, end="", flush=True)
        print("\n")


def show_config() -> None:
    """Show current configuration."""
    settings = get_settings()

    def mask(value: str) -> str:
        if not value:
            return "(not set)"
        return value[:4] + "..." + value[-4:] if len(value) > 10 else "****"

    print("\n=== agent-runtime Configuration ===\n")

    print("Application:")
    print(f"  Name: {settings.app_name}")
    print(f"  Debug: {settings.debug}")
    print(f"  Log Level: {settings.log_level}")

    print("\nLLM Providers:")
    print(f"  Default: {settings.default_provider}")
    print(f"  Default Model: {settings.default_model}")
    print(f"  Anthropic Key: {mask(settings.anthropic_api_key)}")
    print(f"  OpenAI Key: {mask(settings.openai_api_key)}")

    print("\nInvocation:")
    print(f"  Max LLM Calls: {settings.max_llm_calls}")
    print(f"  Streaming Mode: {settings.streaming_mode}")

    print("\nCompaction:")
    print(f"  Enabled: {settings.compaction_enabled}")
    print(f"  Interval: {settings.compaction_interval}")
    print(f"  Overlap: {settings.compaction_overlap}")


if __name__ == "__main__":
    main()
