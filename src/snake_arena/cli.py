"""Command-line launcher: local matches, hosting, and joining."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

logger = logging.getLogger(__name__)


def _add_config_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config", type=str, default=None,
        help="Path to a JSON config file (flags override it).",
    )
    p.add_argument("--width", type=int, default=None)
    p.add_argument("--height", type=int, default=None)
    p.add_argument("--snake-length", type=int, default=None)
    p.add_argument("--timestep-ms", type=int, default=None)
    p.add_argument("--seed", type=int, default=None)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snake-arena",
        description="Multiplayer snake arena with heuristic agents.",
    )
    sub = parser.add_subparsers(dest="command", help="Available commands.")

    # --- local ---
    local_p = sub.add_parser(
        "local", help="Run a headless match between two strategies.",
    )
    _add_config_flags(local_p)
    local_p.add_argument("--first", type=str, default="spread")
    local_p.add_argument("--second", type=str, default="heat-map")
    local_p.add_argument("--max-ticks", type=int, default=1000)
    local_p.add_argument(
        "--realtime", action="store_true",
        help="Sleep between ticks instead of running flat out.",
    )

    # --- host ---
    host_p = sub.add_parser("host", help="Host a networked game.")
    _add_config_flags(host_p)
    host_p.add_argument("--host", type=str, default=None)
    host_p.add_argument("--port", type=int, default=None)
    host_p.add_argument("--max-players", type=int, default=None)
    host_p.add_argument(
        "--http-port", type=int, default=None,
        help="Also serve the operator/spectator API on this port.",
    )

    # --- peer ---
    peer_p = sub.add_parser("peer", help="Join a hosted game.")
    peer_p.add_argument("--config", type=str, default=None)
    peer_p.add_argument("--host", type=str, default=None)
    peer_p.add_argument("--port", type=int, default=None)
    peer_p.add_argument("--seed", type=int, default=None)
    peer_p.add_argument(
        "--strategy", type=str, default=None,
        help=(
            "Strategy name or number. Without one the snake only turns on "
            "keys from an attached key source, so from the command line it "
            "keeps its course."
        ),
    )

    return parser


def _load_config(args: argparse.Namespace):
    from snake_arena.config import ArenaConfig

    config = ArenaConfig.load(args.config) if args.config else ArenaConfig()
    flag_map = {
        "width": "width",
        "height": "height",
        "snake_length": "snake_length",
        "timestep_ms": "timestep_ms",
        "seed": "seed",
        "host": "host",
        "port": "port",
        "max_players": "max_players",
    }
    overrides = {
        cfg_name: getattr(args, cli_name, None)
        for cli_name, cfg_name in flag_map.items()
    }
    return config.replace(**overrides)


def _run_local(args: argparse.Namespace) -> int:
    from snake_arena.ai.strategies import Strategy
    from snake_arena.display import ScriptedKeys
    from snake_arena.engine import LocalMatch

    config = _load_config(args)
    strategies = (Strategy.parse(args.first), Strategy.parse(args.second))
    if args.realtime:
        match = LocalMatch(config, ScriptedKeys(), strategies)
    else:
        match = LocalMatch(
            config, ScriptedKeys(), strategies, sleep=lambda _: None,
        )
    result = match.run(max_ticks=args.max_ticks)
    print(result.summary())  # noqa: T201
    return 0


async def _read_line() -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, sys.stdin.readline)


async def _host(config, http_port: int | None) -> int:
    from snake_arena.net.host import HostSession, SessionStatus, start_listener

    session = HostSession(config)
    server = await start_listener(session, config.host, config.port)

    api_server = None
    api_task = None
    if http_port is not None:
        import uvicorn

        from snake_arena.server.app import create_app

        api_server = uvicorn.Server(uvicorn.Config(
            create_app(session), host=config.host, port=http_port,
            log_level="warning",
        ))
        api_task = asyncio.create_task(api_server.serve())
        logger.info("Operator API on http://%s:%d", config.host, http_port)

    try:
        print("Press Enter once everyone has joined.")  # noqa: T201
        while session.status == SessionStatus.LOBBY:
            if not await _read_line():
                break
            if session.status != SessionStatus.LOBBY:
                break
            try:
                await session.close_lobby()
            except ValueError as exc:
                logger.warning("%s", exc)
        server.close()
        if session.status == SessionStatus.LOBBY and api_server is None:
            logger.error("Input closed before the lobby was closed.")
            return 1

        if session.status == SessionStatus.READY:
            print("Press Enter to start the game.")  # noqa: T201
            await _read_line()
            if session.status == SessionStatus.READY:
                await session.start()

        await session.wait_finished()
        state = session.state()
        print(  # noqa: T201
            f"Game over after {state.get('tick', 0)} ticks, "
            f"winner: {state.get('winner')}.",
        )
    finally:
        server.close()
        await server.wait_closed()
        if api_server is not None:
            api_server.should_exit = True
            await api_task
        await session.cleanup()
    return 0


def _run_host(args: argparse.Namespace) -> int:
    config = _load_config(args)
    return asyncio.run(_host(config, args.http_port))


async def _peer(config, strategy) -> int:
    from snake_arena.net.peer import PeerSession

    reader, writer = await asyncio.open_connection(config.host, config.port)
    logger.info("Connected to %s:%d.", config.host, config.port)
    session = PeerSession(reader, writer, config, strategy=strategy)
    result = await session.run()
    print(result.summary())  # noqa: T201
    return 0


def _run_peer(args: argparse.Namespace) -> int:
    from snake_arena.ai.strategies import Strategy
    from snake_arena.net.protocol import ProtocolError

    config = _load_config(args)
    strategy = Strategy.parse(args.strategy) if args.strategy else None
    if strategy is None:
        logger.warning(
            "No --strategy given and no key source attached; "
            "the snake will keep its course.",
        )
    try:
        return asyncio.run(_peer(config, strategy))
    except (ConnectionError, asyncio.IncompleteReadError, ProtocolError) as exc:
        logger.error("Connection to the host failed: %s", exc)
        return 1


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``snake-arena`` CLI."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    handlers = {
        "local": _run_local,
        "host": _run_host,
        "peer": _run_peer,
    }
    try:
        return handlers[args.command](args)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
