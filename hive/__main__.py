"""
Hive command line.

    python -m hive status   # print the fleet status report as JSON
    python -m hive serve    # run the HTTP coordinator
"""
import argparse
import asyncio
import sys

from hive.config import settings
from hive.fleet.controller import HiveController


async def _print_status() -> int:
    controller = HiveController.from_settings(settings)
    try:
        print("ULYSSES Hive Mind Online")
        print(controller.status().model_dump_json(indent=2))
    finally:
        await controller.stop()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="hive", description="Hive fleet coordinator")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("status", help="Print the fleet status report")
    serve = sub.add_parser("serve", help="Run the HTTP coordinator")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args(argv)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("hive.main:app", host=args.host, port=args.port, reload=settings.debug)
        return 0

    return asyncio.run(_print_status())


if __name__ == "__main__":
    sys.exit(main())
