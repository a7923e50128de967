"""CLI: agent-stream serve, ask, replay, config validate, config show."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import yaml

from ..config import config_to_dict, load_config, validate_config
from ..core.demux import StreamDemultiplexer
from ..tags import TagTable
from ..types import EVENT_DELTA, EVENT_ERROR, EVENT_TOOL, StreamEvent, UpstreamError


def _read_chunks(path: Path, chunk_size: int) -> list[bytes]:
    raw = path.read_bytes()
    if chunk_size <= 0:
        return [raw]
    return [raw[i:i + chunk_size] for i in range(0, len(raw), chunk_size)]


def cmd_replay(args):
    """Feed a captured raw upstream stream through the demultiplexer."""
    config = load_config(args.config)
    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        sys.exit(1)

    demux = StreamDemultiplexer(
        tags=TagTable.from_config(config.tags),
        filters=config.filters,
    )
    for chunk in _read_chunks(path, args.chunk_size):
        for event in demux.feed(chunk):
            print(json.dumps(event.to_dict(), ensure_ascii=False))
    for event in demux.end_of_stream():
        print(json.dumps(event.to_dict(), ensure_ascii=False))

    if args.stats:
        s = demux.stats
        print(
            f"chunks={s.chunks} chars={s.chars} tools={s.tool_events} "
            f"duplicates={s.duplicate_tools} deltas={s.deltas} dropped={s.frames_dropped}",
            file=sys.stderr,
        )


def _print_event(event: StreamEvent) -> None:
    if event.type == EVENT_DELTA:
        sys.stdout.write(event.text)
        sys.stdout.flush()
    elif event.type == EVENT_TOOL:
        name = (event.payload or {}).get("tool_name", "?")
        print(f"\n[tool] {name}", file=sys.stderr)
    elif event.type == EVENT_ERROR:
        print(f"\n[error] {event.text}", file=sys.stderr)
    else:
        print()


async def _ask(config, question: str, thread_id, mock: bool) -> int:
    from ..server.relay import relay_events
    from ..upstream import AgentClient, MockAgentClient

    tags = TagTable.from_config(config.tags)
    if mock:
        client = MockAgentClient(tags=tags, filters=config.filters)
    else:
        client = AgentClient(config.upstream)
    try:
        try:
            upstream = await client.open_stream(question, thread_id)
        except UpstreamError as e:
            print(f"Upstream error: {e}", file=sys.stderr)
            return 1
        demux = StreamDemultiplexer(tags=tags, filters=config.filters)
        failed = False
        async for event in relay_events(upstream, demux):
            _print_event(event)
            failed = failed or event.type == EVENT_ERROR
        return 1 if failed else 0
    finally:
        await client.aclose()


def cmd_ask(args):
    """Ask the upstream agent a question and print the streamed answer."""
    config = load_config(args.config)
    code = asyncio.run(_ask(config, args.question, args.thread_id, args.mock))
    if code:
        sys.exit(code)


def cmd_serve(args):
    """Start the HTTP relay."""
    import uvicorn

    from ..server import create_app

    config = load_config(args.config)
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    if args.upstream:
        config.upstream.base_url = args.upstream
    if args.mock:
        config.server.mock = True

    errors = validate_config(config)
    if errors:
        for e in errors:
            print(f"  - {e}", file=sys.stderr)
        sys.exit(1)

    app = create_app(config)
    target = "mock" if config.server.mock else config.upstream.base_url
    print(f"agent-stream on {config.server.host}:{config.server.port} -> {target}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=args.log_level.lower(),
    )


def cmd_config_validate(args):
    """Validate a config file."""
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    errors = validate_config(config)
    if errors:
        print("Config errors:")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)
    print("Config is valid.")


def cmd_config_show(args):
    """Print the effective config (defaults included) as YAML."""
    config = load_config(args.config)
    print(yaml.safe_dump(config_to_dict(config), sort_keys=False), end="")


def main():
    parser = argparse.ArgumentParser(
        prog="agent-stream",
        description="Demultiplex tagged agent response streams",
    )
    parser.add_argument("--config", "-c", help="Path to config file")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP relay")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, help="Listen port")
    serve_parser.add_argument("--upstream", "-u", help="Upstream agent base URL")
    serve_parser.add_argument("--mock", action="store_true", help="Serve canned answers")

    # ask
    ask_parser = subparsers.add_parser("ask", help="Stream one answer to stdout")
    ask_parser.add_argument("question", help="Question for the agent")
    ask_parser.add_argument("--thread-id", "-t", type=int, default=None, help="Conversation thread id")
    ask_parser.add_argument("--mock", action="store_true", help="Use the offline mock upstream")

    # replay
    replay_parser = subparsers.add_parser("replay", help="Demultiplex a captured raw stream")
    replay_parser.add_argument("file", help="File holding the raw upstream bytes")
    replay_parser.add_argument(
        "--chunk-size", "-n", type=int, default=0,
        help="Feed the file in pieces of this many bytes (default: all at once)",
    )
    replay_parser.add_argument("--stats", action="store_true", help="Print session stats to stderr")

    # config
    config_parser = subparsers.add_parser("config", help="Config management")
    config_sub = config_parser.add_subparsers(dest="config_action")
    config_sub.add_parser("validate", help="Validate config file")
    config_sub.add_parser("show", help="Print the effective config")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "serve": cmd_serve,
        "ask": cmd_ask,
        "replay": cmd_replay,
    }

    if args.command == "config":
        if args.config_action == "validate":
            cmd_config_validate(args)
        elif args.config_action == "show":
            cmd_config_show(args)
        else:
            config_parser.print_help()
    elif args.command in commands:
        commands[args.command](args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
