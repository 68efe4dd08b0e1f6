# src/binfetch/cli.py

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from binfetch import log_utils
from binfetch.config import load_config
from binfetch.constants import DEFAULT_CHUNK_SIZE, EXECUTABLE_PERMISSIONS
from binfetch.exceptions import BinfetchError
from binfetch.providers import File, new_provider


def write_artifact(artifact: File, output_dir: str) -> str:
    """
    Write an artifact into `output_dir`, feeding every chunk through its hash.

    The bytes land in a `.part` file that is renamed into place once complete.
    On POSIX the result is made executable.

    Parameters:
        artifact (File): Artifact returned by Provider.fetch().
        output_dir (str): Destination directory; created when missing.

    Returns:
        str: Path of the written file.
    """
    os.makedirs(output_dir, exist_ok=True)
    target = os.path.join(output_dir, artifact.name)
    temp_path = f"{target}.part"
    try:
        with artifact.data as source, open(temp_path, "wb") as out:
            while True:
                chunk = source.read(DEFAULT_CHUNK_SIZE)
                if not chunk:
                    break
                artifact.hash.update(chunk)
                out.write(chunk)
        os.replace(temp_path, target)
    except OSError:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    if os.name != "nt":
        os.chmod(target, EXECUTABLE_PERMISSIONS)
    return target


def _run_fetch(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    provider = new_provider(args.url, config)
    artifact = provider.fetch()
    path = write_artifact(artifact, args.output)
    log_utils.logger.info(f"Saved {artifact.name} {artifact.version} to {path}")
    log_utils.logger.info(f"SHA-256: {artifact.hash.hexdigest()}")


def _run_latest(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    provider = new_provider(args.url, config)
    tag, html_url = provider.get_latest_version()
    print(f"{tag}\t{html_url}" if html_url else tag)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="binfetch",
        description="binfetch - download release binaries for this platform",
    )
    parser.add_argument(
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR); overrides the config file",
    )
    parser.add_argument(
        "--config",
        help="Path to a binfetch.yaml configuration file",
    )
    parser.add_argument(
        "--log-dir",
        help="Also write a rotating binfetch.log into this directory; overrides LOG_DIR",
    )
    subparsers = parser.add_subparsers(dest="command")

    fetch_parser = subparsers.add_parser(
        "fetch", help="Download the release binary for this platform"
    )
    fetch_parser.add_argument(
        "url", help="Repository or release URL, e.g. github.com/owner/repo"
    )
    fetch_parser.add_argument(
        "-o",
        "--output",
        default=".",
        help="Directory to write the binary to (default: current directory)",
    )

    latest_parser = subparsers.add_parser(
        "latest", help="Show the latest release tag of a repository"
    )
    latest_parser.add_argument("url", help="Repository URL")

    return parser


def main(argv: Optional[list] = None) -> None:
    """
    Entry point for the binfetch command-line interface.

    Loads the configuration, applies the log level and optional file logging,
    then dispatches the `fetch` and `latest` subcommands. Any binfetch error is
    logged and the process exits with status 1.
    """
    # Logging is initialized by importing log_utils
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    try:
        config = load_config(args.config)
    except BinfetchError as e:
        log_utils.logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    level = args.log_level or config.get("LOG_LEVEL")
    if level:
        log_utils.set_log_level(level)

    log_dir = args.log_dir or config.get("LOG_DIR")
    if log_dir:
        try:
            log_utils.add_file_logging(Path(log_dir).expanduser(), level or "INFO")
        except OSError as e:
            log_utils.logger.error(f"Could not enable file logging in {log_dir}: {e}")
            sys.exit(1)

    try:
        if args.command == "fetch":
            _run_fetch(args, config)
        elif args.command == "latest":
            _run_latest(args, config)
    except BinfetchError as e:
        log_utils.logger.error(str(e))
        sys.exit(1)
    except OSError as e:
        log_utils.logger.error(f"Could not write binary: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
