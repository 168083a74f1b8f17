"""Command-line runner for the warehouse service.

Usage:
    python src/server.py warehouse.json                  # Serve on 0.0.0.0:8080
    python src/server.py warehouse.json --port 9000      # Serve on another port
"""

import argparse
import sys

import uvicorn

from app import create_app
from storage.config import load_settings
from storage.exceptions import StoreCorruptedError
from storage.persistence import SystemStore
from storage.registry import SystemRegistry


def main(argv=None):
    parser = argparse.ArgumentParser(description="Warehouse storage manager")
    parser.add_argument("database", nargs="?", help="JSON file holding the storage systems")
    parser.add_argument("--host", help="Address to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to bind (default: 8080)")
    args = parser.parse_args(argv)

    settings = load_settings(database=args.database, host=args.host, port=args.port)

    try:
        registry = SystemRegistry.from_store(SystemStore(settings.database), command_timeout=settings.command_timeout)
    except StoreCorruptedError as exc:
        print(exc, file=sys.stderr)
        sys.exit(1)

    uvicorn.run(create_app(settings, registry), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
