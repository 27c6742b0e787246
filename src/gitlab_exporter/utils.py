"""
Utility functions for the GitLab exporter.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from subprocess import CompletedProcess
from typing import Final

DEFAULT_LOG_FILE: Final[str] = "export.log"


class PassError(Exception):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass path does not exist in the password store."""


class PassphraseRequiredError(PassError):
    """Raised when a GPG passphrase is required for the pass utility."""


def setup_logging(*, verbose: bool = False, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Configure logging for the export run.

    Diagnostic and user-facing messages both go to the console and, unless
    ``log_file`` is None, are appended to the log file.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def _validate_pass_path(pass_path: str) -> None:
    if not re.fullmatch(r"(?:[A-Za-z0-9_-]+)(?:/[A-Za-z0-9_-]+)*", pass_path):
        msg = f"Invalid pass path: {pass_path}"
        raise ValueError(msg)


def _describe_failure(pass_path: str, error: subprocess.CalledProcessError, detail: str = "") -> str:
    return (
        f"Failed to get value from pass at '{pass_path}'{detail}.\n"
        f"Output: {error.stdout.strip()}\n"
        f"Error: {error.stderr.strip()}\n"
        f"Return code: {error.returncode}"
    )


def _run_pass_with_passphrase(pass_path: str) -> CompletedProcess[str]:
    # Fails in non-interactive sessions (e.g. pytest)
    try:
        passphrase = input("Enter passphrase for GPG key used by pass: ")
    except EOFError as e:
        msg = "Passphrase input was interrupted. Please run the command in an interactive session."
        raise PassphraseRequiredError(msg) from e

    env = os.environ.copy() | {"PASSWORD_STORE_GPG_OPTS": "--pinentry-mode=loopback --passphrase-fd 0"}
    try:
        return subprocess.run(  # noqa: S603
            ["pass", pass_path], input=passphrase, capture_output=True, text=True, check=True, env=env
        )
    except subprocess.CalledProcessError as e:
        raise PassphraseRequiredError(_describe_failure(pass_path, e, " with passphrase")) from e


def get_pass_value(pass_path: str) -> str:
    """Get a secret from the pass utility at the specified path."""
    _validate_pass_path(pass_path)

    try:
        result: CompletedProcess[str] = subprocess.run(  # noqa: S603
            ["pass", pass_path], capture_output=True, text=True, check=True
        )
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.lower()
        if e.returncode == 1 and "not in the password store" in stderr:
            msg = f"Pass path '{pass_path}' not found or invalid."
            raise InvalidPassPathError(msg) from e
        if e.returncode == 2 and "gpg" in stderr and "public key decryption failed" in stderr:
            result = _run_pass_with_passphrase(pass_path)
        else:
            raise PassError(_describe_failure(pass_path, e)) from e

    return result.stdout.strip()
