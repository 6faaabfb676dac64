# FILE: bukedlist/scripts/backup.py
"""
Menu actions of the app from a shell:

    bukedlist-backup export [PATH]    # stdout when PATH is omitted; a directory gets a dated file name
    bukedlist-backup import PATH
    bukedlist-backup clear --yes
    bukedlist-backup seed
"""
import argparse
import sys
from typing import List, Optional

from bukedlist import backup
from bukedlist.database import DB_URL, make_engine
from bukedlist.errors import WishlistError
from bukedlist.logger import get_logger
from bukedlist.store import WishlistStore

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bukedlist-backup", description="Export, import or reset the wishlist store.")
    parser.add_argument("--db", default=DB_URL, help="database URL (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_export = sub.add_parser("export", help="write the whole store as JSON")
    p_export.add_argument("path", nargs="?", help="output file or directory")

    p_import = sub.add_parser("import", help="replace the store with a JSON export")
    p_import.add_argument("path", help="export file to read")

    p_clear = sub.add_parser("clear", help="delete everything and restore defaults")
    p_clear.add_argument("--yes", action="store_true", help="do not ask for confirmation")

    sub.add_parser("seed", help="create tables and default data if missing")
    return parser


def run(args: argparse.Namespace) -> int:
    engine = make_engine(args.db)
    try:
        store = WishlistStore(engine)
        store.initialize()

        if args.command == "export":
            if args.path:
                written = backup.export_to_file(store, args.path)
                print(f"[export] wrote {written}")
            else:
                sys.stdout.write(backup.export_all(store) + "\n")
        elif args.command == "import":
            summary = backup.import_from_file(store, args.path)
            print(f"[import] categories={summary.categories} items={summary.items} settings={summary.settings}")
        elif args.command == "clear":
            if not args.yes:
                answer = input("Clear all data? This cannot be undone. [y/N] ")
                if answer.strip().lower() not in ("y", "yes"):
                    print("[clear] aborted")
                    return 1
            backup.clear_all(store)
            print("[clear] store reset to defaults")
        elif args.command == "seed":
            print(f"[seed] categories={len(store.list_categories())} items={store.count_items()}")
        return 0
    finally:
        engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except (WishlistError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"[{args.command}] error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
