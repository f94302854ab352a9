"""Entry point: python -m unistore <command> [args...]

Thin wrapper that turns argv into EntityStore calls, prints results as JSON
on stdout and errors on stderr. Paths come from unistore.toml / env vars.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from unistore.config import StoreConfig, load_config
from unistore.errors import StoreError
from unistore.store import EntityStore

USAGE = """\
Usage: python -m unistore <command> [args...]
  init                               Create the document and backups/ if missing
  add <kind> <json-record>           Insert a record
  update <kind> <id> <json-updates>  Merge fields into a record
  delete <kind> <id>                 Remove a record
  get <kind> <id>                    Show one record
  search <kind> [json-criteria]      Substring/equality search (all if omitted)
  backups                            List backup files, oldest first
  restore <backup-file>              Replace the document with a backup
  prune <keep>                       Keep only the newest <keep> backups

kind: department | professor | student"""

# command -> (min args, max args)
_ARITY = {
    "init": (0, 0),
    "add": (2, 2),
    "update": (3, 3),
    "delete": (2, 2),
    "get": (2, 2),
    "search": (1, 2),
    "backups": (0, 0),
    "restore": (1, 1),
    "prune": (1, 1),
}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _parse_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise StoreError(f"Invalid JSON argument: {e}") from e


async def run_command(store: EntityStore, cmd: str, args: list[str]) -> Any:
    """Execute one CLI command against ``store`` and return a JSON-able result."""
    await store.initialize()

    if cmd == "init":
        return {"data_file": str(store.data_file), "backup_dir": str(store.backup_dir)}
    if cmd == "add":
        return await store.add(args[0], _parse_json(args[1]))
    if cmd == "update":
        return await store.update(args[0], args[1], _parse_json(args[2]))
    if cmd == "delete":
        return await store.delete(args[0], args[1])
    if cmd == "get":
        return await store.get(args[0], args[1])
    if cmd == "search":
        criteria = _parse_json(args[1]) if len(args) > 1 else {}
        return await store.search(args[0], criteria)
    if cmd == "backups":
        return [p.name for p in await store.list_backups()]
    if cmd == "restore":
        await store.restore(args[0])
        return {"restored": args[0]}
    if cmd == "prune":
        try:
            keep = int(args[0])
        except ValueError as e:
            raise StoreError(f"keep must be an integer, got {args[0]!r}") from e
        return {"removed": await store.prune_backups(keep)}
    raise ValueError(f"Unknown command: {cmd}")


def main(argv: list[str] | None = None, config: StoreConfig | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    cmd = argv[0] if argv else ""
    args = argv[1:]

    arity = _ARITY.get(cmd)
    if arity is None or not arity[0] <= len(args) <= arity[1]:
        print(USAGE, file=sys.stderr)
        return 1

    config = config or load_config()
    _setup_logging(config.log_level)
    store = EntityStore.from_config(config)

    try:
        result = asyncio.run(run_command(store, cmd, args))
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
