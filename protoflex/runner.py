"""Start registered programs inside a network namespace."""

import os
import stat
import subprocess

_BINARY_MIME_TYPES = ("application/x-executable", "application/x-elf")


class UnsupportedFileTypeError(ValueError):
    """Raised when a path is neither an executable shell script nor a binary."""

    def __init__(self, message="unsupported file type"):
        super().__init__(message)


class PermissionDeniedError(PermissionError):
    """Raised when a file lacks execute permission."""

    def __init__(self, message="file does not have execute permission"):
        super().__init__(message)


def has_execute_permission(path):
    """Return True if ``path`` is a non-directory with any execute bit set."""
    try:
        info = os.stat(path)
    except OSError:
        return False
    if stat.S_ISDIR(info.st_mode):
        return False
    return bool(info.st_mode & 0o111)


def is_shell_script(path):
    """Return True for an executable file whose name ends in ``.sh``."""
    return str(path).endswith(".sh") and has_execute_permission(path)


def is_binary(path):
    """Return True for an executable file that ``file`` reports as an executable/ELF."""
    if not has_execute_permission(path):
        return False
    try:
        completed = subprocess.run(
            ["file", "--mime-type", "-b", str(path)],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError:
        return False
    if completed.returncode != 0:
        return False
    output = completed.stdout or ""
    return any(mime in output for mime in _BINARY_MIME_TYPES)


def _start(namespace, command, path):
    if not has_execute_permission(path):
        raise PermissionDeniedError()
    return subprocess.Popen(["sudo", "ip", "netns", "exec", namespace, *command])


def run_executable(namespace, path, args):
    """Start ``path`` with ``args`` inside ``namespace`` without waiting for it.

    Shell scripts are run through bash, binaries directly. Returns the started
    process.
    """
    arguments = list(args or ())
    if is_shell_script(path):
        return _start(namespace, ["bash", str(path), *arguments], path)
    if is_binary(path):
        return _start(namespace, [str(path), *arguments], path)
    raise UnsupportedFileTypeError()