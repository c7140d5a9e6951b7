# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import os
import shlex
import shutil
import subprocess
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class BootstrapError(RuntimeError):
    """Fatal provisioning failure, the run stops at the first one."""


def get_run_id(timestamp, architecture=None):
    if architecture:
        return f"{timestamp}_{architecture}_bootstrap"
    return f"{timestamp}_bootstrap"


def get_default_log_root() -> Path:
    log_root = os.getenv("BOOTSTRAP_LOG_ROOT")
    if log_root:
        return Path(log_root)
    return Path.cwd() / "bootstrap_logs"


def ensure_readwriteable_dir(path, raise_on_fail=True, logger=logger):
    """
    Ensures that the given path is a directory.
    If it doesn't exist, create it.
    If it exists, check if it is readable and writable.

    Returns:
        bool: True if the directory is readable and writable, False otherwise.

    Raises:
        ValueError: If the path exists but is not a directory (when raise_on_fail=True).
        PermissionError: If the directory is not writable (when raise_on_fail=True).
    """
    path = Path(path)

    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Directory created: {path}")
    elif not path.is_dir():
        logger.error(f"'{path}' exists but is not a directory.")
        if raise_on_fail:
            raise ValueError(f"'{path}' exists but is not a directory.")
        return False

    test_file = path / ".test_write_access"
    try:
        with test_file.open("w") as f:
            f.write("test")
        test_file.unlink()
    except OSError:
        logger.error(f"Directory '{path}' is not writable.")
        if raise_on_fail:
            raise PermissionError(f"Directory '{path}' is not writable.")
        return False
    return True


def check_command(name: str) -> str:
    """Return the resolved path of an executable, fail the run if it is absent."""
    resolved = shutil.which(name)
    if not resolved:
        raise BootstrapError(f"{name} is required but not installed.")
    return resolved


def privileged(command, use_sudo=True):
    """Prefix a command with sudo unless disabled or already running as root."""
    if isinstance(command, str):
        command = shlex.split(command)
    if use_sudo and os.geteuid() != 0:
        return ["sudo", *command]
    return list(command)


def piped_installer(url: str, use_sudo=False):
    # pipefail so a failed download is not masked by a successful `sh`
    shell = "sudo sh" if use_sudo and os.geteuid() != 0 else "sh"
    return ["bash", "-o", "pipefail", "-c", f"curl -fsSL {shlex.quote(url)} | {shell}"]


def stream_subprocess_output(pipe, logger, level):
    with pipe:
        for line in iter(pipe.readline, ""):
            logger.log(level, line.rstrip(), extra={"raw": True})


def run_command(
    command, logger, log_file_path=None, copy_env=True, env=None, check=False
):
    """
    Run a command, streaming its stdout/stderr into the caller's logger.

    Note: logger must be passed because the common use case is to capture the command's
    stdout and stderr in the caller's logger.

    Returns the command's return code. With check=True a non-zero return code
    raises BootstrapError instead.
    """
    if command is None:
        raise ValueError("No command provided to run_command.")
    if isinstance(command, str):
        command = shlex.split(command)
    assert isinstance(command, list), "Command must be a list of cmd arguments."

    if env is None:
        env = os.environ.copy() if copy_env else {}

    logger.info(f"Running command: {shlex.join(command)}")

    try:
        if not log_file_path:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                bufsize=1,
                text=True,
                env=env,
            )

            stdout_thread = threading.Thread(
                target=stream_subprocess_output,
                args=(process.stdout, logger, logging.DEBUG),
            )
            stderr_thread = threading.Thread(
                target=stream_subprocess_output,
                args=(process.stderr, logger, logging.ERROR),
            )

            stdout_thread.start()
            stderr_thread.start()

            stdout_thread.join()
            stderr_thread.join()

            return_code = process.wait()
        else:
            logger.info(f"Logging output to: {log_file_path} ...")
            with open(log_file_path, "a", buffering=1) as log_file:
                result = subprocess.run(
                    command,
                    stdout=log_file,
                    stderr=log_file,
                    stdin=subprocess.DEVNULL,
                    text=True,
                    env=env,
                )
            return_code = result.returncode
    except FileNotFoundError as e:
        raise BootstrapError(f"{command[0]} is required but not installed.") from e

    if check and return_code != 0:
        raise BootstrapError(
            f"command failed with return code {return_code}: {shlex.join(command)}"
        )
    return return_code


def capture_command(command, logger, check=True, input_text=None):
    """Run a command and return its CompletedProcess with captured text output."""
    if isinstance(command, str):
        command = shlex.split(command)
    logger.debug(f"Running command: {shlex.join(command)}")
    try:
        result = subprocess.run(
            command,
            input=input_text,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise BootstrapError(f"{command[0]} is required but not installed.") from e

    if check and result.returncode != 0:
        stderr = result.stderr.strip()
        raise BootstrapError(
            f"command failed with return code {result.returncode}: "
            f"{shlex.join(command)}" + (f" ({stderr})" if stderr else "")
        )
    return result


def write_privileged_file(path, content: str, logger, use_sudo=True):
    """Write a root-owned file, going through `sudo tee` when not running as root."""
    path = Path(path)
    if not use_sudo or os.geteuid() == 0:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        logger.info(f"Wrote {path}")
        return

    capture_command(["sudo", "mkdir", "-p", str(path.parent)], logger=logger)
    capture_command(["sudo", "tee", str(path)], logger=logger, input_text=content)
    logger.info(f"Wrote {path}")
