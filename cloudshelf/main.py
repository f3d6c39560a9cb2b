# main.py
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .config import Settings, get_settings
from .exceptions import CloudshelfError, ConfigurationError, PartialFailure
from .listing import media_type_for
from .manager import HierarchyManager
from .paths import folder_tree
from .storage.dto import UploadBlob


def setup_logging(settings: Settings):
    """Configures logging to console and, if configured, to a file."""
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except IOError as e:
            # Log to console if file logging fails (e.g., permissions)
            root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    for name in ("boto3", "botocore", "s3transfer", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


def load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def read_blob(path: Path) -> UploadBlob:
    return UploadBlob(name=path.name, content_type=media_type_for(path.name), data=path.read_bytes())


def _print_listing(listing):
    for folder in listing.folders:
        print(f"{folder.name}/")
    for file in listing.files:
        modified = file.last_modified.isoformat() if file.last_modified else "-"
        print(f"{file.name}\t{file.size}\t{file.type}\t{modified}")


def _print_tree(tree, path: str = "", level: int = 0):
    for folder in tree.get(path, []):
        print(f"{'  ' * level}{folder.name}/")
        _print_tree(tree, folder.path, level + 1)


def run_command(manager: HierarchyManager, args) -> int:
    """Runs one CLI command against the manager and returns the process exit code."""
    if args.command == "ls":
        _print_listing(manager.list(args.path))
    elif args.command == "tree":
        _print_tree(folder_tree(manager.list_all_folders(max_depth=args.depth)))
    elif args.command == "mkdir":
        _print_listing(manager.create_folder(args.parent, args.name))
    elif args.command == "mv":
        _print_listing(manager.rename_folder(args.path, args.new_name))
    elif args.command == "rmdir":
        _print_listing(manager.delete_folder(args.path))
    elif args.command == "rm":
        _print_listing(manager.delete_object(args.key))
    elif args.command == "upload":
        blobs = [read_blob(Path(f)) for f in args.files]
        result = manager.upload(
            blobs,
            args.destination,
            on_progress=lambda name, percent: logging.info(f"{name}: {percent}%"),
        )
        for item in result.results:
            status = "ok" if item.success else f"FAILED ({item.error})"
            print(f"{item.key or item.name}\t{status}")
        return 0 if result.all_succeeded else 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Browse and manage an S3 bucket as files and folders."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ls = sub.add_parser("ls", help="List the files and folders in a folder.")
    ls.add_argument("path", nargs="?", default="")

    tree = sub.add_parser("tree", help="Show the folder hierarchy.")
    tree.add_argument("--depth", type=int, default=2)

    mkdir = sub.add_parser("mkdir", help="Create a folder.")
    mkdir.add_argument("parent")
    mkdir.add_argument("name")

    mv = sub.add_parser("mv", help="Rename a folder.")
    mv.add_argument("path")
    mv.add_argument("new_name")

    rmdir = sub.add_parser("rmdir", help="Delete a folder and everything in it.")
    rmdir.add_argument("path")

    rm = sub.add_parser("rm", help="Delete a single file.")
    rm.add_argument("key")

    upload = sub.add_parser("upload", help="Upload files into a folder.")
    upload.add_argument("destination")
    upload.add_argument("files", nargs="+")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig()
        logging.critical(f"{e}")
        return 1

    setup_logging(settings)

    try:
        manager = HierarchyManager.from_settings(settings)
        return run_command(manager, args)
    except PartialFailure as e:
        logging.error(f"{e}. Re-list the folder to see what was applied.")
        for failure in getattr(e.report, "failed", []):
            logging.error(f"  {failure.key}: {failure.error}")
        return 1
    except (CloudshelfError, ValueError, OSError) as e:
        logging.critical(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
