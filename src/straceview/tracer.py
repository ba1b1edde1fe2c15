# Filename: src/straceview/tracer.py
"""Runs strace on a command or on existing PIDs, writing its output to a file."""

import logging
import os
import shlex
import shutil
import subprocess

import psutil

log = logging.getLogger(__name__)

# --- Constants ---
STRACE_BASE_OPTIONS = ["-f", "-t"]
DEFAULT_STRING_LIMIT = 256
TERMINATE_GRACE_SECONDS = 1.5
KILL_GRACE_SECONDS = 1.0


def build_strace_command(
    strace_path: str,
    output_path: str | os.PathLike,
    command: list[str] | None = None,
    pids: list[int] | None = None,
    stack_traces: bool = True,
    string_limit: int = DEFAULT_STRING_LIMIT,
) -> list[str]:
    """
    Builds the strace argv: follow forks, wall-clock timestamps, longer
    strings, output to a file and optionally a stack trace per call.
    Exactly one of `command` and `pids` must be given.
    """
    if bool(command) == bool(pids):
        raise ValueError("Give either a command to run or PIDs to attach to, not both.")

    cmd = [strace_path, *STRACE_BASE_OPTIONS, "-s", str(string_limit)]
    if stack_traces:
        cmd.append("-k")
    cmd.extend(["-o", os.fspath(output_path)])
    if pids:
        for pid in pids:
            cmd.extend(["-p", str(pid)])
    else:
        cmd.append("--")
        cmd.extend(command)
    return cmd


def existing_pids(pids: list[int]) -> list[int]:
    """Filters out PIDs that do not exist, logging each one dropped."""
    valid = []
    for pid in pids:
        if psutil.pid_exists(pid):
            valid.append(pid)
        else:
            log.warning(f"PID {pid} does not exist, not attaching to it.")
    return valid


def terminate_strace_process(process: subprocess.Popen) -> None:
    """Stops strace with SIGTERM, escalating to SIGKILL if it lingers."""
    if process.poll() is not None:
        return

    log.warning(f"Terminating strace process (PID: {process.pid})...")
    try:
        process.terminate()
        process.wait(timeout=TERMINATE_GRACE_SECONDS)
        log.info(
            f"Strace process {process.pid} terminated gracefully (code {process.returncode})."
        )
        return
    except ProcessLookupError:
        log.warning(f"Strace process {process.pid} already exited before SIGTERM.")
        return
    except subprocess.TimeoutExpired:
        log.warning(
            f"Strace process {process.pid} did not exit after SIGTERM, sending SIGKILL."
        )

    try:
        process.kill()
        process.wait(timeout=KILL_GRACE_SECONDS)
        log.info(f"Strace process {process.pid} killed (code {process.returncode}).")
    except ProcessLookupError:
        log.warning(f"Strace process {process.pid} already exited before SIGKILL.")
    except subprocess.TimeoutExpired:
        log.error(f"Strace process {process.pid} did not exit even after SIGKILL!")


def run_strace(
    output_path: str | os.PathLike,
    command: list[str] | None = None,
    pids: list[int] | None = None,
    stack_traces: bool = True,
) -> int:
    """
    Traces a command (run mode) or existing processes (attach mode) until
    they finish or the user interrupts, and returns strace's exit status.

    Raises:
        FileNotFoundError: If strace is not installed.
        ValueError: If no valid target was given.
    """
    strace_path = shutil.which("strace")
    if not strace_path:
        raise FileNotFoundError("Could not find 'strace' executable in PATH.")

    if pids:
        pids = existing_pids(pids)
        if not pids:
            raise ValueError("None of the given PIDs exist.")

    cmd = build_strace_command(
        strace_path, output_path, command=command, pids=pids, stack_traces=stack_traces
    )
    log.info(f"Running: {shlex.join(cmd)}")

    process = subprocess.Popen(cmd)
    try:
        returncode = process.wait()
    except KeyboardInterrupt:
        log.info("Interrupted, stopping strace.")
        terminate_strace_process(process)
        returncode = process.returncode if process.returncode is not None else -1

    log.info(f"Strace exited with code {returncode}.")
    return returncode
