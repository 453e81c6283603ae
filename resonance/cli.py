"""Resonance CLI — serve the admin API or inspect the remote dataset."""

import argparse
import sys


def main():
    parser = argparse.ArgumentParser(
        prog="resonance",
        description="Resonance admin — browse and bulk-edit tag/media resonance rows",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the admin REST API")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: 8010)")
    serve_parser.add_argument("--host", default=None, help="Host (default: 127.0.0.1)")
    serve_parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    serve_parser.add_argument("--quiet", action="store_true", help="Only show WARNING and above")

    # Groups command
    groups_parser = subparsers.add_parser("groups", help="Load the dataset and list groups")
    groups_parser.add_argument("--json", action="store_true", dest="json_output", help="Output as JSON")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _dispatch(args)


def _log_level(args) -> str:
    if getattr(args, "verbose", False):
        return "DEBUG"
    if getattr(args, "quiet", False):
        return "WARNING"
    return "INFO"


def _setup_logging(log_level: str):
    import logging

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _dispatch(args):
    """Route CLI commands."""
    if args.command == "serve":
        _serve(args.host, args.port, _log_level(args))
    elif args.command == "groups":
        sys.exit(_groups(json_output=args.json_output))
    else:
        print(f"Unknown command: {args.command}")
        sys.exit(1)


def _serve(host: str | None, port: int | None, log_level: str = "INFO"):
    """Start the admin API with a freshly loaded hub."""
    import asyncio
    import logging

    _setup_logging(log_level)
    logger = logging.getLogger("resonance.serve")

    import uvicorn

    from resonance.config import AppConfig
    from resonance.hub.api import create_api
    from resonance.hub.core import ResonanceHub

    config = AppConfig.from_env()
    host = host or config.server.host
    port = port or config.server.port

    async def start():
        logger.info("=" * 70)
        logger.info("Resonance Admin")
        logger.info("=" * 70)
        logger.info(f"Remote: {config.supabase.url or '(not configured)'}")
        logger.info(f"Save strategy: {config.save.strategy}")
        logger.info(f"Server: http://{host}:{port}")
        logger.info("=" * 70)

        hub = ResonanceHub(config)
        if not await hub.load():
            logger.error(f"Initial load failed: {hub.loader.error} (retry with POST /api/reload)")

        app = create_api(hub)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host,
                port=port,
                log_level=log_level.lower(),
                access_log=(log_level != "WARNING"),
            )
        )
        try:
            await server.serve()
        finally:
            await hub.close()

    asyncio.run(start())


def _groups(json_output: bool = False) -> int:
    """Load once and print every group with its row count. Returns the exit code."""
    import asyncio
    import json

    from resonance.config import AppConfig
    from resonance.hub.core import ResonanceHub

    async def run():
        hub = ResonanceHub(AppConfig.from_env())
        try:
            ok = await hub.load()
            return ok, hub.groups(), hub.loader.error
        finally:
            await hub.close()

    ok, groups, error = asyncio.run(run())
    if not ok:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    if json_output:
        print(json.dumps({"groups": groups}, indent=2, ensure_ascii=False))
        return 0

    print("Resonance Groups")
    print("=" * 40)
    for group in groups:
        print(f"  {group['tag']:<8} {group['rows']:>5} row(s)")
    print(f"  Total groups: {len(groups)}")
    return 0


if __name__ == "__main__":
    main()
