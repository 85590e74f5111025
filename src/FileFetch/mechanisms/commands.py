"""Mechanisms that shell out to command-line download tools.

Each tool is located with :func:`shutil.which`; a missing executable yields an
:class:`~FileFetch.mechanisms.base.Unavailable` outcome so the registry stops
probing it for the rest of the process.  Passive FTP mode is passed to the
child through its own environment (``FTP_PASSIVE``), never by mutating
``os.environ``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, ClassVar, Dict, List, Optional, Sequence

from ..errors import MechanismUnavailable
from ..uri import SourceDescriptor
from .base import (
    FetchContext,
    FetchMechanism,
    NotApplicable,
    Outcome,
    Success,
    TransferFailure,
    Unavailable,
)

LOGGER = logging.getLogger(__name__)

_MASK = "***masked***"


def _tail(payload: Optional[bytes], limit: int = 400) -> str:
    if not payload:
        return ""
    text = payload.decode("utf-8", errors="replace").strip()
    return text[-limit:]


class CommandMechanism(FetchMechanism):
    """Base class for mechanisms that run an external executable."""

    executable: ClassVar[str] = ""
    # lynx writes the document to stdout, so its output is always captured.
    captures_stdout: ClassVar[bool] = False

    def __init__(
        self,
        *,
        which: Callable[[str], Optional[str]] = shutil.which,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self._which = which
        self._runner = runner

    def locate(self) -> Optional[str]:
        """Return the absolute path of the executable, or ``None``."""

        return self._which(self.executable)

    def require(self) -> str:
        """Return the executable path or raise :class:`MechanismUnavailable`."""

        binary = self.locate()
        if binary is None:
            raise MechanismUnavailable(self.name, f"'{self.executable}' not found on PATH")
        return binary

    def available(self) -> bool:
        return self.locate() is not None

    def skip_reason(self, source: SourceDescriptor, context: FetchContext) -> Optional[str]:
        """Return a reason to decline ``source`` before running anything."""

        return None

    def build_command(
        self, binary: str, source: SourceDescriptor, target: Path, context: FetchContext
    ) -> List[str]:
        raise NotImplementedError

    def build_input(
        self, source: SourceDescriptor, target: Path, context: FetchContext
    ) -> Optional[bytes]:
        return None

    def collect(
        self,
        completed: subprocess.CompletedProcess,
        source: SourceDescriptor,
        target: Path,
        context: FetchContext,
    ) -> Outcome:
        return Success(target)

    def child_environment(self, context: FetchContext) -> Dict[str, str]:
        env = dict(os.environ)
        env["FTP_PASSIVE"] = "1" if context.passive_ftp else "0"
        return env

    def attempt(self, source: SourceDescriptor, target: Path, context: FetchContext) -> Outcome:
        skip = self.skip_reason(source, context)
        if skip:
            return NotApplicable(skip)

        try:
            binary = self.require()
        except MechanismUnavailable as exc:
            return Unavailable(exc.reason)

        command = self.build_command(binary, source, target, context)
        LOGGER.debug(
            "running fetch command",
            extra={
                "stage": "fetch",
                "mechanism": self.name,
                "command": _masked(command, context.from_email),
            },
        )
        quiet = not context.debug
        try:
            completed = self._runner(
                command,
                input=self.build_input(source, target, context),
                stdout=subprocess.PIPE if (quiet or self.captures_stdout) else None,
                stderr=subprocess.PIPE if quiet else None,
                env=self.child_environment(context),
                timeout=context.timeout_sec,
                check=False,
            )
        except FileNotFoundError:
            return Unavailable(f"'{binary}' could not be executed")
        except subprocess.TimeoutExpired:
            return TransferFailure(f"{self.executable} timed out after {context.timeout_sec}s")
        except OSError as exc:
            return TransferFailure(f"{self.executable} failed to start: {exc}")

        if completed.returncode != 0:
            detail = _tail(completed.stderr) or _tail(None if self.captures_stdout else completed.stdout)
            message = f"{self.executable} exited with status {completed.returncode}"
            return TransferFailure(f"{message}: {detail}" if detail else message)
        return self.collect(completed, source, target, context)


def _masked(command: Sequence[str], secret: str) -> List[str]:
    if not secret:
        return list(command)
    return [part.replace(secret, _MASK) for part in command]


class WgetMechanism(CommandMechanism):
    name = "wget"
    executable = "wget"

    def build_command(self, binary, source, target, context):
        command = [binary]
        if not context.debug:
            command.append("--quiet")
        if context.passive_ftp:
            command.append("--passive-ftp")
        command.extend(["--output-document", str(target), source.uri])
        return command


class CurlMechanism(CommandMechanism):
    name = "curl"
    executable = "curl"

    def build_command(self, binary, source, target, context):
        command = [binary]
        if not context.debug:
            command.append("--silent")
        if source.scheme == "ftp":
            command.extend(["--user", f"anonymous:{context.from_email}"])
            # curl defaults to passive; active mode needs an explicit port spec.
            if not context.passive_ftp:
                command.extend(["--ftp-port", "-"])
        command.extend(["--fail", "--output", str(target), source.uri])
        return command


class LynxMechanism(CommandMechanism):
    """Dump the document with ``lynx -source`` and write stdout to the target.

    lynx decompresses ``.gz`` payloads it believes to be text, so it sits last
    in the ``http`` chain.
    """

    name = "lynx"
    executable = "lynx"
    captures_stdout = True

    def build_command(self, binary, source, target, context):
        return [binary, "-source", f"-auth=anonymous:{context.from_email}", source.uri]

    def collect(self, completed, source, target, context):
        try:
            target.write_bytes(completed.stdout or b"")
        except OSError as exc:
            return TransferFailure(f"could not write '{target}': {exc}")
        return Success(target)


class NcftpMechanism(CommandMechanism):
    """Retrieve through ``ncftpget``.

    ncftpget only selects passive mode interactively, so it declines every
    call made with passive FTP enabled.
    """

    name = "ncftp"
    executable = "ncftpget"

    def skip_reason(self, source, context):
        if context.passive_ftp:
            return "ncftp cannot be forced into passive mode"
        return None

    def build_command(self, binary, source, target, context):
        return [
            binary,
            "-V",
            "-p",
            context.from_email,
            source.host,
            str(target.parent),
            source.remote_path,
        ]


class FtpCommandMechanism(CommandMechanism):
    """Drive the interactive ``ftp`` client through a scripted dialog on stdin.

    The client reports nothing useful on failure, so success is returned as
    soon as the dialog completes; the orchestrator's size check decides.
    """

    name = "ftp"
    executable = "ftp"

    def build_command(self, binary, source, target, context):
        return [binary, "-n"]

    def build_input(self, source, target, context):
        dialog = [
            f"lcd {target.parent}",
            f"open {source.host}",
            f"user anonymous {context.from_email}",
            "cd /",
            f"cd {source.path}",
            "binary",
            f"get {source.file} {target.name}",
            "quit",
        ]
        return ("\n".join(dialog) + "\n").encode("utf-8")

    def attempt(self, source, target, context):
        outcome = super().attempt(source, target, context)
        if isinstance(outcome, TransferFailure):
            LOGGER.debug(
                "ftp dialog returned non-zero; deferring to size check",
                extra={"stage": "fetch", "mechanism": self.name, "reason": outcome.reason},
            )
            return Success(target)
        return outcome


__all__ = [
    "CommandMechanism",
    "CurlMechanism",
    "FtpCommandMechanism",
    "LynxMechanism",
    "NcftpMechanism",
    "WgetMechanism",
]
