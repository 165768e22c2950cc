import argparse
import sys
from pathlib import Path

from core.logging_setup import setup_console_logging
from quiz_api.services.test_store import StorageError, get_test_store
from quiz_api.utils import json_dump, read_json_file, write_json_file
from serialization import TestValidationError, parse_test, serialize_metadata, serialize_test

setup_console_logging()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage click quiz tests")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Store a test from a JSON file")
    import_cmd.add_argument("file", type=Path, help="Path to test JSON")

    export_cmd = commands.add_parser("export", help="Write a stored test to JSON")
    export_cmd.add_argument("test_id")
    export_cmd.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output file (stdout when omitted)",
    )

    commands.add_parser("list", help="List stored tests")

    delete_cmd = commands.add_parser("delete", help="Delete a stored test")
    delete_cmd.add_argument("test_id")

    validate_cmd = commands.add_parser("validate", help="Check a test JSON file")
    validate_cmd.add_argument("file", type=Path, help="Path to test JSON")
    return parser.parse_args(argv)


def _load_file(path: Path):
    if not path.is_file():
        raise FileNotFoundError(f"No such file: {path}")
    return parse_test(read_json_file(path, None))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    store = get_test_store()

    try:
        if args.command == "validate":
            test = _load_file(args.file)
            print(f"OK: {test.name} ({len(test.questions)} questions)")

        elif args.command == "import":
            test = store.create(_load_file(args.file))
            print(f"Saved test {test.id}")

        elif args.command == "export":
            test = store.get(args.test_id)
            if test is None:
                print(f"Test {args.test_id} not found", file=sys.stderr)
                return 1
            if args.output is None:
                print(json_dump(serialize_test(test)))
            else:
                write_json_file(args.output, serialize_test(test))
                print(f"Exported test to {args.output}")

        elif args.command == "list":
            for test in store.list():
                meta = serialize_metadata(test)
                print(f"{meta['id']}\t{meta['name']}\t{meta['questionCount']} questions")

        elif args.command == "delete":
            if not store.delete(args.test_id):
                print(f"Test {args.test_id} not found", file=sys.stderr)
                return 1
            print(f"Deleted test {args.test_id}")

    except (TestValidationError, ValueError) as e:
        print(f"Invalid test: {e}", file=sys.stderr)
        return 2
    except (StorageError, OSError) as e:
        print(f"Storage error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
