#!/usr/bin/env python3
# Filename: src/straceview/cli.py
import argparse
import logging
import os
import shlex
import sys
import tempfile

from straceview.export import write_json
from straceview.log import LOG_QUEUE, setup_logging
from straceview.parser.detect import MODE_NAMES, mode_from_name
from straceview.parser.errors import TraceSourceError
from straceview.parser.reader import parse
from straceview.parser.resolver import DEFAULT_TOOL, Addr2LineResolver
from straceview.tracer import run_strace
from straceview.ui.app import TraceViewApp


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Write the parsed trace as JSON instead of opening the viewer.",
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        default=None,
        help="JSON output file (default: stdout).",
    )
    parser.add_argument(
        "--pretty", action="store_true", help="Indent the JSON output."
    )
    parser.add_argument(
        "--resolve",
        action="store_true",
        help="Resolve every backtrace frame to a source line before output.",
    )
    parser.add_argument(
        "--addr2line",
        metavar="TOOL",
        default=DEFAULT_TOOL,
        help=f"Symbolizer to run for --resolve and in the viewer (default: {DEFAULT_TOOL}).",
    )


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parses command-line arguments for straceview."""
    parser = argparse.ArgumentParser(
        prog="straceview",
        description="Parses strace output into call records, for browsing or JSON export.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
        "  straceview parse trace.log              # Browse a trace file\n"
        "  straceview parse trace.log --json -o out.json --resolve\n"
        "  straceview trace -- ls -l               # Trace a command, then browse\n"
        "  straceview trace --json -p 1234 5678    # Attach to PIDs, print JSON",
    )
    parser.add_argument(
        "--log",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "TRACE"],
        help="Set the logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        default=None,
        help="Append logs to the specified file.",
    )
    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse an existing strace output file.")
    parse_cmd.add_argument("file", metavar="FILE", help="strace output file")
    parse_cmd.add_argument(
        "--format",
        default="auto",
        choices=["auto", *MODE_NAMES],
        help="Expected PID/timestamp columns; only a hint for detection (default: auto).",
    )
    _add_output_options(parse_cmd)

    trace_cmd = subparsers.add_parser(
        "trace", help="Run strace on a command or on PIDs, then parse its output."
    )
    _add_output_options(trace_cmd)
    trace_cmd.add_argument(
        "--no-stack",
        dest="stack_traces",
        action="store_false",
        help="Do not ask strace for a stack trace per call (-k).",
    )
    trace_cmd.add_argument(
        "--keep-trace",
        metavar="PATH",
        default=None,
        help="Write the raw strace output to PATH instead of a temporary file.",
    )
    trace_cmd.add_argument(
        "-p",
        "--pids",
        nargs="+",
        type=int,
        metavar="PID",
        help="Attach Mode: one or more existing process IDs to trace.",
    )
    trace_cmd.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        metavar="COMMAND [ARG...]",
        help="Run Mode: the command and its arguments to launch and trace.",
    )

    args = parser.parse_args(argv)

    if args.subcommand == "trace":
        if args.command and args.command[0] == "--":
            args.command = args.command[1:]
        if bool(args.pids) == bool(args.command):
            trace_cmd.error("give either -p PID... or a COMMAND to run")
    if args.output and not args.json:
        parser.error("-o/--output requires --json")

    return args


def _present(args: argparse.Namespace, records, errors, source_name: str) -> int:
    """Resolves if asked, then writes JSON or runs the viewer."""
    log = logging.getLogger("straceview.cli")
    resolver = Addr2LineResolver(tool=args.addr2line)
    if args.resolve:
        log.info("Resolving backtraces...")
        resolver.resolve_records(records)

    if args.json:
        write_json(records, errors, args.output or sys.stdout, pretty=args.pretty)
        return 0

    log.info("Launching Textual UI...")
    app_instance = TraceViewApp(
        records=records,
        errors=errors,
        resolver=resolver,
        log_queue=LOG_QUEUE,
        source_name=source_name,
    )
    app_instance.run()
    log.info("Textual UI finished.")
    return 0


def _run_parse(args: argparse.Namespace) -> int:
    log = logging.getLogger("straceview.cli")
    try:
        records, errors = parse(args.file, mode_hint=mode_from_name(args.format))
    except TraceSourceError as e:
        log.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return _present(args, records, errors, args.file)


def _run_trace(args: argparse.Namespace) -> int:
    log = logging.getLogger("straceview.cli")
    if args.keep_trace:
        trace_path = args.keep_trace
    else:
        fd, trace_path = tempfile.mkstemp(prefix="straceview-", suffix=".trace")
        os.close(fd)

    try:
        try:
            returncode = run_strace(
                trace_path,
                command=args.command or None,
                pids=args.pids,
                stack_traces=args.stack_traces,
            )
        except (FileNotFoundError, ValueError) as e:
            log.error(str(e))
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if returncode != 0:
            log.warning(f"strace exited with status {returncode}")

        try:
            records, errors = parse(trace_path)
        except TraceSourceError as e:
            print(f"Error: strace produced no output: {e}", file=sys.stderr)
            return 1
        if not records and not errors:
            print("Error: strace produced no output.", file=sys.stderr)
            return 1

        if args.pids:
            source_name = f"PIDs {' '.join(map(str, args.pids))}"
        else:
            source_name = shlex.join(args.command)
        return _present(args, records, errors, source_name)
    finally:
        if not args.keep_trace:
            try:
                os.unlink(trace_path)
            except OSError as e:
                log.debug(f"Could not remove {trace_path}: {e}")


def main(argv: list[str] | None = None) -> int:
    """
    Parses args, sets up logging, then parses (or records and parses) a trace
    and shows it in the viewer or writes it as JSON.
    """
    args = parse_arguments(argv)
    setup_logging(args.log, args.log_file, console=args.json)
    log = logging.getLogger("straceview.cli")
    log.debug(f"Parsed arguments: {args}")

    try:
        if args.subcommand == "parse":
            return _run_parse(args)
        return _run_trace(args)
    except Exception as e:
        log.critical(f"FATAL ERROR: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    sys.exit(main())
