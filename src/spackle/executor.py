"""Hook process execution.

Spawns one external process per hook with ``asyncio`` and captures its
output in full. Running a hook as another OS user is isolated behind an
``IdentityCommandBuilder`` so platforms without user impersonation plug in
a builder that refuses such requests without the scheduler noticing.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunAs:
    """OS identity to run hook processes under."""

    user: str
    group: Optional[str] = None


@dataclass
class ProcessResult:
    """Exit status and fully captured output of one process."""

    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class SpawnError(Exception):
    """The OS could not start the process (missing executable, permissions...)."""

    def __init__(self, argv: Sequence[str], cause: OSError) -> None:
        self.argv = list(argv)
        self.cause = cause
        super().__init__(f"failed to launch {argv[0] if argv else '<empty>'}: {cause}")


class SetupError(Exception):
    """The requested run-as identity could not be prepared."""


# ---------------------------------------------------------------------------
# Identity-aware command builders
# ---------------------------------------------------------------------------


class IdentityCommandBuilder(ABC):
    """Translates a ``RunAs`` request into subprocess keyword arguments."""

    @abstractmethod
    def spawn_kwargs(self, run_as: Optional[RunAs]) -> dict[str, Any]:
        """Return extra keyword arguments for ``create_subprocess_exec``.

        Raises:
            SetupError: If the identity cannot be used.
        """


class PosixIdentityBuilder(IdentityCommandBuilder):
    """Drops privileges to a named user via ``user``/``group``/``extra_groups``."""

    def spawn_kwargs(self, run_as: Optional[RunAs]) -> dict[str, Any]:
        if run_as is None:
            return {}

        import grp
        import pwd

        try:
            account = pwd.getpwnam(run_as.user)
        except KeyError:
            raise SetupError(f"unknown user: {run_as.user}") from None

        gid = account.pw_gid
        if run_as.group is not None:
            try:
                gid = grp.getgrnam(run_as.group).gr_gid
            except KeyError:
                raise SetupError(f"unknown group: {run_as.group}") from None

        env = {
            **os.environ,
            "HOME": account.pw_dir,
            "USER": account.pw_name,
            "LOGNAME": account.pw_name,
        }
        return {
            "user": account.pw_uid,
            "group": gid,
            "extra_groups": os.getgrouplist(account.pw_name, gid),
            "env": env,
        }


class UnsupportedIdentityBuilder(IdentityCommandBuilder):
    """For platforms without user impersonation."""

    def spawn_kwargs(self, run_as: Optional[RunAs]) -> dict[str, Any]:
        if run_as is not None:
            raise SetupError(f"running as another user is not supported on this platform ({os.name})")
        return {}


def default_identity_builder() -> IdentityCommandBuilder:
    if os.name == "posix":
        return PosixIdentityBuilder()
    return UnsupportedIdentityBuilder()


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


async def run_process(
    argv: Sequence[str],
    cwd: str | Path,
    run_as: Optional[RunAs] = None,
    *,
    identity_builder: Optional[IdentityCommandBuilder] = None,
) -> ProcessResult:
    """Run *argv* in *cwd* and wait for it to exit.

    stdout and stderr are captured in full and returned whatever the exit
    status. There is no timeout; cancelling the caller kills the process.

    Raises:
        SetupError: If *run_as* cannot be applied.
        SpawnError: If the process cannot be started.
    """
    builder = identity_builder or default_identity_builder()
    kwargs = builder.spawn_kwargs(run_as)

    logger.debug("Spawning %s in %s", list(argv), cwd)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            **kwargs,
        )
    except PermissionError as exc:
        if run_as is not None and exc.errno == errno.EPERM:
            raise SetupError(f"failed to run command as user {run_as.user}: {exc}") from exc
        raise SpawnError(argv, exc) from exc
    except OSError as exc:
        raise SpawnError(argv, exc) from exc

    try:
        stdout_bytes, stderr_bytes = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise
    exit_code = process.returncode if process.returncode is not None else 1
    logger.debug("%s exited with %d", argv[0], exit_code)

    return ProcessResult(
        exit_code=exit_code,
        stdout=stdout_bytes or b"",
        stderr=stderr_bytes or b"",
    )
