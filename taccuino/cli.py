"""
Command-line entry point for Taccuino.

Usage:
    taccuino                      Open the full-screen note manager
    taccuino open                 Same as above
    taccuino list                 Print notes, newest first
    taccuino export notes.json    Write all notes to one JSON array file
    taccuino import notes.json    Upsert notes from such a file
    taccuino clear                Delete every note (asks for YES)

Configuration:
    - Data directory: per-user application data path (see taccuino.config)
    - Config file: config.json in the data directory
    - Notes directory: --notes-dir, then $TACCUINO_NOTES_DIR, then config
"""

import argparse
import sys
from typing import List, Optional

from taccuino import __version__
from taccuino.config import Colors, load_config, message_timeout, resolve_notes_dir
from taccuino.errors import InvalidImportFormatError, NoteStoreError
from taccuino.navigator import DELETE_TOKEN, Navigator
from taccuino.notes import NoteStore
from taccuino.transfer import export_notes, import_notes

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taccuino",
        description="Taccuino - CLI Note Manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--notes-dir", help="Directory holding the note files")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("open", help="Open the full-screen note manager")
    subparsers.add_parser("list", help="Print all notes, newest first")

    export = subparsers.add_parser("export", help="Export all notes to a JSON file")
    export.add_argument("path", help="Destination file")

    import_ = subparsers.add_parser("import", help="Import notes from a JSON file")
    import_.add_argument("path", help="Source file")

    subparsers.add_parser("clear", help="Delete every note")
    return parser


def report_skipped(store: NoteStore) -> None:
    """Warn about note files the last listing could not read."""
    for error in store.skipped:
        print(f"{Colors.YELLOW}Warning: {error}{Colors.END}")


def run_open(store: NoteStore, config: dict) -> int:
    # Imported here so the plain subcommands work without a terminal
    from taccuino.tui import NoteApp

    app = NoteApp(Navigator(store), theme=config.get("theme"),
                  message_timeout=message_timeout(config))
    app.run()
    return EXIT_OK


def run_list(store: NoteStore) -> int:
    notes = store.get_all()
    report_skipped(store)
    if not notes:
        print(f"{Colors.YELLOW}No notes found.{Colors.END}")
        return EXIT_OK
    for note in notes:
        print(f"{Colors.CYAN}{note.id}{Colors.END}  {note.created_at:%Y-%m-%d}  {note.title}")
    return EXIT_OK


def run_export(store: NoteStore, path: str) -> int:
    count = export_notes(store, path)
    report_skipped(store)
    print(f"{Colors.GREEN}✓ Exported {count} note(s) to {path}{Colors.END}")
    return EXIT_OK


def run_import(store: NoteStore, path: str) -> int:
    summary = import_notes(store, path)
    print(f"{Colors.GREEN}✓ Import finished: {summary.created} created, "
          f"{summary.updated} updated, {summary.skipped} skipped{Colors.END}")
    return EXIT_OK


def run_clear(store: NoteStore) -> int:
    print(f"{Colors.YELLOW}⚠️ You are about to delete every note in:{Colors.END}")
    print(f"{Colors.RED}   {store.notes_dir}{Colors.END}")
    print(f"{Colors.YELLOW}This action cannot be undone!{Colors.END}\n")

    confirm = input(f"{Colors.CYAN}Type '{DELETE_TOKEN}' to confirm deletion: {Colors.END}").strip()
    if confirm != DELETE_TOKEN:
        print(f"{Colors.YELLOW}Deletion cancelled.{Colors.END}")
        return EXIT_OK

    removed = store.delete_all()
    print(f"{Colors.GREEN}✓ Deleted {removed} note(s).{Colors.END}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Taccuino application."""
    args = build_parser().parse_args(argv)
    config = load_config()

    try:
        store = NoteStore(resolve_notes_dir(config, args.notes_dir))
    except NoteStoreError as e:
        print(f"{Colors.RED}✗ {e}{Colors.END}")
        return EXIT_FAILURE

    try:
        if args.command == "list":
            return run_list(store)
        if args.command == "export":
            return run_export(store, args.path)
        if args.command == "import":
            return run_import(store, args.path)
        if args.command == "clear":
            return run_clear(store)
        return run_open(store, config)
    except InvalidImportFormatError as e:
        print(f"{Colors.RED}✗ Invalid import file: {e}{Colors.END}")
        return EXIT_FAILURE
    except NoteStoreError as e:
        print(f"{Colors.RED}✗ {e}{Colors.END}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\n\nGoodbye! 👋")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
