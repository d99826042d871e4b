#!/usr/bin/env python3
"""
drifty command-line interface.

Usage:
    drifty init <doc-file>
    drifty add <doc-file> <file-to-watch>
    drifty check [path]
    drifty report [path] [--format plaintext|json|yaml]
    drifty validate [path]
    drifty help

Exit codes:
    0  success (``report``: every entry CURRENT or INVALID)
    1  command failed (``report``: drift detected)
    2  ``report`` could not run
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from drifty import __version__
from drifty.core.colors import error, info, print_box, set_enabled, success, warning
from drifty.core.config import DriftyConfig, load_effective_config
from drifty.core.drift import DriftEngine, Status
from drifty.core.errors import DriftyError
from drifty.core.frontmatter import add_watch, init_file
from drifty.core.logger import setup_logger
from drifty.core.reconcile import ReconciliationSession, SessionState
from drifty.core.reporting import EMPTY_MESSAGE, FORMATS, render, summary_line, validate
from drifty.prompt import SessionPrompt

logger = logging.getLogger(__name__)

HELP_TEXT = """drifty - Watch for documentation drift

Usage:

  drifty init <doc-file>
      Initializes the doc file with an empty driftwatcher table.

  drifty add <doc-file> <file-to-watch>
      Adds a file to watch to the doc file's frontmatter and computes its
      initial hash.

  drifty check [<path>]
      Checks all documentation in the current directory (recursively) and
      offers an interactive update of drifted entries. Optionally specify a
      single file or directory to check.

  drifty report [<path>] [--format json|yaml|plaintext]
      Reports the status of all tracked files. Exits 1 on drift; useful for CI.

  drifty validate [<path>]
      Verifies that all driftwatcher frontmatter is valid, including file paths.

  drifty help
      Show this help message.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='drifty',
        description="Watch for documentation drift",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init docs/architecture.md
  %(prog)s add docs/architecture.md '$ROOT/src/**/*.py'
  %(prog)s check docs/
  %(prog)s report --format json
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument(
        '--config',
        type=Path,
        help='Path to configuration file (default: .drifty.yaml/.toml/.json at the project root)'
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show debug output'
    )
    verbosity.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Errors only'
    )
    parser.add_argument(
        '--log-file',
        type=Path,
        help='Also write JSON log lines to this file'
    )
    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colored output'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='<command>')

    init_parser = subparsers.add_parser('init', help='Initialize a doc file with an empty driftwatcher table')
    init_parser.add_argument('doc_file', type=Path, help='Documentation file')

    add_parser = subparsers.add_parser('add', help='Watch a file, directory or glob from a doc file')
    add_parser.add_argument('doc_file', type=Path, help='Documentation file')
    add_parser.add_argument('target', help='Path spec to watch (relative, $ROOT/..., or glob)')

    check_parser = subparsers.add_parser('check', help='Interactively review drifted entries')
    check_parser.add_argument('path', nargs='?', type=Path, help='File or directory to check (default: .)')

    report_parser = subparsers.add_parser('report', help='Report the status of all tracked files')
    report_parser.add_argument('path', nargs='?', type=Path, help='File or directory to report on (default: .)')
    report_parser.add_argument(
        '--format',
        choices=FORMATS,
        default='plaintext',
        help='Output format (default: plaintext)'
    )

    validate_parser = subparsers.add_parser('validate', help='Verify frontmatter and watched paths')
    validate_parser.add_argument('path', nargs='?', type=Path, help='File or directory to validate (default: .)')

    subparsers.add_parser('help', help='Show this help message')
    return parser


def cmd_init(args, config: DriftyConfig) -> int:
    created = init_file(args.doc_file, config.tracking_key, config.max_file_size)
    if created:
        print(success(f"Initialized {config.tracking_key} in {args.doc_file}"))
    else:
        print(success(f"Added {config.tracking_key} to existing frontmatter in {args.doc_file}"))
    return 0


def cmd_add(args, config: DriftyConfig) -> int:
    result = add_watch(
        args.doc_file,
        args.target,
        key=config.tracking_key,
        root_markers=config.root_markers,
        max_size=config.max_file_size
    )
    count = len(result.target.matched_paths)
    print(success(
        f"Added '{result.entry.path_spec}' to {args.doc_file} "
        f"({count} file(s), hash: {result.entry.stored_hash[:12]}...)"
    ))
    return 0


def _print_broken(broken):
    if not broken:
        return
    print(warning("\nWarning: The following files could not be parsed:"), file=sys.stderr)
    for path, message in broken:
        print(f"  {path}: {message}", file=sys.stderr)


def cmd_check(args, config: DriftyConfig, input_fn=None) -> int:
    scan = DriftEngine(config).scan(args.path)
    counts = scan.counts()

    for record in scan.records():
        if record.status is Status.MISSING:
            print(error(f"MISSING: {record.document} -> {record.path_spec}"), file=sys.stderr)
        elif record.status is Status.INVALID:
            print(warning(
                f"INVALID: {record.document} -> {record.path_spec} ({record.detail})"
            ), file=sys.stderr)

    print()
    print(info(
        f"Found {counts[Status.CURRENT]} current, {counts[Status.DRIFTED]} drifted, "
        f"{counts[Status.MISSING]} missing"
    ))

    session = ReconciliationSession(scan, config)
    exit_code = 0

    if not session.items:
        if counts[Status.CURRENT]:
            print(success("All documentation is up-to-date!"))
    else:
        state = SessionPrompt(session, input_fn=input_fn or input).run()
        if state is SessionState.CONFIRMED:
            if not session.selected:
                print("No entries selected.")
            result = session.apply()
            if result.updated or result.removed:
                print_box([
                    f"Updated {result.updated} hash(es)",
                    f"Removed {result.removed} entr(ies)",
                    f"Wrote {len(result.written)} document(s)",
                ], title="Summary")
            for path, reason in result.failures:
                print(error(f"ERROR: Failed to update {path}: {reason}"), file=sys.stderr)
            if result.failures:
                exit_code = 1

    _print_broken(session.broken_documents)
    return exit_code


def cmd_report(args, config: DriftyConfig) -> int:
    scan = DriftEngine(config).scan(args.path)
    _print_broken(scan.errors())

    sys.stdout.write(render(scan, args.format))

    if scan.has_problems:
        counts = scan.counts()
        print(
            f"Drift detected: {counts[Status.DRIFTED]} drifted, "
            f"{counts[Status.MISSING]} missing",
            file=sys.stderr
        )
        logger.debug(summary_line(scan))
        return 1
    return 0


def cmd_validate(args, config: DriftyConfig) -> int:
    result = validate(args.path, config)

    for message in result.warnings:
        print(warning(f"Warning: {message}"), file=sys.stderr)
    for message in result.errors:
        print(error(message), file=sys.stderr)

    if not result.is_valid:
        print(
            error(f"\nValidation failed with {len(result.errors)} error(s)"),
            file=sys.stderr
        )
        return 1

    if result.checked == 0:
        print(EMPTY_MESSAGE)
    else:
        print(success(
            f"All driftwatcher entries are valid ({result.checked} file(s) checked)."
        ))
    return 0


COMMANDS = {
    'init': cmd_init,
    'add': cmd_add,
    'check': cmd_check,
    'report': cmd_report,
    'validate': cmd_validate,
}


def _config_start(args) -> Optional[Path]:
    """Directory from which the project config file is searched."""
    target = getattr(args, 'doc_file', None) or getattr(args, 'path', None)
    if target is None:
        return None
    target = Path(target)
    return target if target.is_dir() else target.parent


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    set_enabled(not args.no_color)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    setup_logger("drifty", log_file=args.log_file, level=level, use_colors=not args.no_color)

    if args.command in (None, 'help'):
        print(HELP_TEXT)
        sys.exit(0)

    # report reserves exit code 1 for drift
    failure_code = 2 if args.command == 'report' else 1

    try:
        config = load_effective_config(args.config, start=_config_start(args))
        exit_code = COMMANDS[args.command](args, config)
    except DriftyError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(failure_code)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(130)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
