#!/usr/bin/env python3
"""
library-curator: validate, analyze, tag and relocate a music library laid out
as Artist/YYYY - Album/NN - Title.ext.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from filesystem.structure_validator import unit_paths
from models.schemas import LogFormat, Status
from pipeline.orchestrator import LibraryCurator
from utils.config_loader import get_config_template, load_config
from utils.exceptions import CuratorError
from utils.logging_config import setup_logging
from utils.scan_log import ScanLog


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Music library structure validator and organizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s validate /music --scan-log scan.jsonl     # Record Good/Bad folders
  %(prog)s analyze /music/Various --recursive        # Explain folder structures
  %(prog)s tag /music --dry-run                      # Preview tag rewrites
  %(prog)s move /incoming --destination /music       # Relocate Good artist folders
  %(prog)s replay scan.jsonl --action tag            # Re-tag folders from a log
        """
    )

    parser.add_argument("--config", type=Path, help="Path to config file (default: ./config.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", type=Path, help="Write application log to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_options = argparse.ArgumentParser(add_help=False)
    scan_options.add_argument("--skip", action="append", default=[], metavar="PATH",
                              help="Skip this folder and everything below it (repeatable)")
    scan_options.add_argument("--scan-log", type=Path, help="Write Good/Bad folders to this log")
    scan_options.add_argument("--log-format", choices=[f.value for f in LogFormat],
                              help="Scan log format (default from config: JSON)")
    scan_options.add_argument("--append", action="store_true",
                              help="Append to the scan log instead of starting a fresh one")
    scan_options.add_argument("--quiet", "-q", action="store_true",
                              help="Hide routine Empty/NoMusicFiles/Skipped messages")

    change_options = argparse.ArgumentParser(add_help=False)
    change_options.add_argument("--dry-run", action="store_true", help="Report changes without making them")
    change_options.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    validate = subparsers.add_parser("validate", parents=[scan_options], help="Classify folders as Good/Bad")
    validate.add_argument("path", type=Path)
    selection = validate.add_mutually_exclusive_group()
    selection.add_argument("--good-only", action="store_true", help="Only list Good artist folders")
    selection.add_argument("--bad-only", action="store_true", help="Only list Bad folders")

    analyze = subparsers.add_parser("analyze", parents=[scan_options], help="Explain folder structure")
    analyze.add_argument("path", type=Path)
    analyze.add_argument("--recursive", "-r", action="store_true", help="Analyze every folder below path")

    tag = subparsers.add_parser("tag", parents=[scan_options, change_options],
                                help="Rewrite tags of Good folders from their naming")
    tag.add_argument("path", type=Path)

    move = subparsers.add_parser("move", parents=[scan_options, change_options],
                                 help="Move Good artist folders into a destination library")
    move.add_argument("path", type=Path)
    move.add_argument("--destination", type=Path, help="Destination library root")

    merge = subparsers.add_parser("merge", parents=[scan_options, change_options],
                                  help="Merge one artist folder into another")
    merge.add_argument("source", type=Path)
    merge.add_argument("target", type=Path)

    replay = subparsers.add_parser("replay", parents=[change_options],
                                   help="Re-apply tag/move to Good folders of a scan log")
    replay.add_argument("log", type=Path)
    replay.add_argument("--action", choices=["tag", "move"], required=True)
    replay.add_argument("--destination", type=Path, help="Destination library root for move")
    replay.add_argument("--quiet", "-q", action="store_true")

    summarize = subparsers.add_parser("summarize", help="Count the entries of a scan log")
    summarize.add_argument("log", type=Path)
    summarize.add_argument("--status", help="Only count entries with this status")

    subparsers.add_parser("config-template", help="Print a configuration template")

    return parser.parse_args(argv)


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def build_scan_log(args: argparse.Namespace, config: dict) -> Optional[ScanLog]:
    path = getattr(args, "scan_log", None) or config['scan_log'].get('path')
    if not path:
        return None

    log_format = getattr(args, "log_format", None) or config['scan_log'].get('format', 'JSON')
    scan_log = ScanLog(Path(path).expanduser(), log_format)
    if not getattr(args, "append", False):
        scan_log.initialize()
    return scan_log


def print_outcomes(outcomes) -> int:
    failed = 0
    for outcome in outcomes:
        marker = "OK " if outcome.success else "ERR"
        prefix = "[dry-run] " if outcome.dry_run else ""
        target = f" -> {outcome.destination}" if outcome.destination else ""
        print(f"{marker} {prefix}{outcome.action} {outcome.source}{target}: {outcome.message}")
        failed += 0 if outcome.success else 1
    return 1 if failed else 0


def run_command(args: argparse.Namespace, config: dict) -> int:
    if args.command == "summarize":
        curator = LibraryCurator(config)
        print(curator.summarize(args.log, args.status).format())
        return 0

    config['filesystem']['skip_list'] = list(config['filesystem'].get('skip_list') or []) + \
        [str(p) for p in getattr(args, "skip", [])]

    # A replay reads a scan log; starting a fresh one could truncate its input
    scan_log = None if args.command == "replay" else build_scan_log(args, config)

    curator = LibraryCurator(
        config,
        scan_log=scan_log,
        quiet=getattr(args, "quiet", None) or None,
        dry_run=getattr(args, "dry_run", None) or None,
    )

    if args.command == "validate":
        results = curator.validate(args.path)
        if args.good_only or args.bad_only:
            wanted = Status.GOOD if args.good_only else Status.BAD
            for unit_path in unit_paths(results, wanted):
                print(unit_path)
        else:
            for result in results:
                print(f"{result.status.value:<8} {result.reason.value:<14} {result.path}")
        return 0

    if args.command == "analyze":
        for analysis in curator.analyze(args.path, recursive=args.recursive):
            print(f"{analysis.structure_type.value} ({analysis.confidence:.2f}): {analysis.path}")
            for line in analysis.details:
                print(f"    - {line}")
            for line in analysis.recommendations:
                print(f"    > {line}")
        return 0

    destructive = not curator.dry_run and not args.yes
    if args.command in ("move", "merge", "replay") and destructive:
        if not confirm(f"Really {args.command} folders on disk?"):
            print("Cancelled.")
            return 1

    if args.command == "tag":
        return print_outcomes(curator.tag(args.path))
    if args.command == "move":
        return print_outcomes(curator.move(args.path, args.destination))
    if args.command == "merge":
        return print_outcomes([curator.merge(args.source, args.target)])
    if args.command == "replay":
        return print_outcomes(curator.replay_log(args.log, args.action, args.destination))

    raise CuratorError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    try:
        args = parse_arguments(argv)

        if args.command == "config-template":
            print(get_config_template())
            return 0

        config_path = args.config or Path.cwd() / "config.yaml"
        config = load_config(config_path)

        log_level = "DEBUG" if args.verbose else config['logging'].get('level', 'INFO')
        log_file = args.log_file or config['logging'].get('file')
        setup_logging(
            log_level,
            Path(log_file).expanduser() if log_file else None,
            max_file_size=config['logging'].get('max_file_size', 5 * 1024 * 1024),
            backup_count=config['logging'].get('backup_count', 3),
        )

        return run_command(args, config)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1
    except CuratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        try:
            error_msg = str(e)
        except (UnicodeDecodeError, UnicodeEncodeError):
            error_msg = repr(e).encode('utf-8', errors='replace').decode('utf-8')

        print(f"Unexpected error: {error_msg}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
