"""
Environment variable application.

A provider declares a toolchain's environment as a list of EnvVar pairs. Keys
carry meaning by convention:

- a key ending in ``_HOME`` is the toolchain home variable
- ``PATH`` holds the toolchain's own bin directories (not the full PATH)
- ``EXCLUDE_KEYWORDS`` is a comma-separated list of substrings; existing PATH
  entries containing any of them are dropped before the bin directories are
  prepended, so repeated switches never grow PATH
- anything else is set verbatim

On Unix-like systems only the current process environment changes. On Windows
the machine-scope environment is rewritten through an elevated PowerShell
script, and the process environment is updated as well.
"""

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, MutableMapping, Optional

from svmkit.core.config_store import EnvVar
from svmkit.core.exceptions import PrivilegeError
from svmkit.core.platform import PlatformInfo, detect_platform

logger = logging.getLogger(__name__)

PATH_KEY = "PATH"
EXCLUDE_KEY = "EXCLUDE_KEYWORDS"
HOME_SUFFIX = "_HOME"


@dataclass
class EnvPlan:
    """Environment variables sorted by role."""

    home: Optional[EnvVar] = None
    bin_paths: List[str] = field(default_factory=list)
    exclude_keywords: List[str] = field(default_factory=list)
    extras: List[EnvVar] = field(default_factory=list)


def classify_env_vars(env_vars: List[EnvVar], separator: str = os.pathsep) -> EnvPlan:
    """
    Sort declared variables into home, PATH, exclusions and extras.

    Pairs with an empty key or value are ignored.
    """
    plan = EnvPlan()
    for var in env_vars:
        if not var.key or not var.value:
            continue
        if var.key.endswith(HOME_SUFFIX):
            plan.home = var
        elif var.key == PATH_KEY:
            plan.bin_paths = [p for p in var.value.split(separator) if p]
        elif var.key == EXCLUDE_KEY:
            plan.exclude_keywords = [k.strip() for k in var.value.split(",") if k.strip()]
        else:
            plan.extras.append(var)
    return plan


def _same_path(a: str, b: str, case_insensitive: bool) -> bool:
    a = a.rstrip("/\\")
    b = b.rstrip("/\\")
    if case_insensitive:
        return a.lower() == b.lower()
    return a == b


def rebuild_path(
    current: str,
    bin_paths: List[str],
    exclude_keywords: List[str],
    separator: str = os.pathsep,
    case_insensitive: bool = False,
) -> str:
    """
    Drop excluded entries from a PATH string and prepend bin paths.

    Entries containing an exclude keyword (case-insensitive substring) are
    removed, as are existing copies of the bin paths themselves.

    Example:
        >>> rebuild_path("/old/go/bin:/usr/bin", ["/svm/go/current/bin"], ["go"])
        '/svm/go/current/bin:/usr/bin'
    """
    keywords = [k.lower() for k in exclude_keywords]
    kept = []
    for entry in current.split(separator):
        entry = entry.strip()
        if not entry:
            continue
        if any(k in entry.lower() for k in keywords):
            continue
        if any(_same_path(entry, b, case_insensitive) for b in bin_paths):
            continue
        kept.append(entry)
    return separator.join(list(bin_paths) + kept)


def strip_path(
    current: str,
    bin_paths: List[str],
    separator: str = os.pathsep,
    case_insensitive: bool = False,
) -> str:
    """Remove the given bin paths from a PATH string."""
    kept = [
        entry
        for entry in current.split(separator)
        if entry and not any(_same_path(entry, b, case_insensitive) for b in bin_paths)
    ]
    return separator.join(kept)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class EnvironmentApplier:
    """
    Applies a toolchain's declared environment.

    Example:
        >>> applier = EnvironmentApplier()
        >>> applier.apply("go", "1.21.5", [
        ...     EnvVar("GOROOT", "/home/me/.svm/go/current"),
        ...     EnvVar("PATH", "/home/me/.svm/go/current/bin"),
        ...     EnvVar("EXCLUDE_KEYWORDS", "golang,go"),
        ... ])
    """

    def __init__(
        self,
        platform: Optional[PlatformInfo] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        """
        Initialize applier.

        Args:
            platform: Target platform (default: detected)
            environ: Process environment to mutate (default: os.environ)
            runner: subprocess.run compatible callable for PowerShell
        """
        self.platform = platform or detect_platform()
        self.environ = environ if environ is not None else os.environ
        self.runner = runner

    @property
    def separator(self) -> str:
        return self.platform.path_separator

    def apply(
        self,
        toolchain: str,
        version: str,
        env_vars: List[EnvVar],
        default_bin: Optional[Path] = None,
    ):
        """
        Apply declared variables.

        Args:
            toolchain: Toolchain name (for messages)
            version: Version being activated (for messages)
            env_vars: Variables declared by the provider
            default_bin: Bin directory to expose when no PATH pair is declared

        Raises:
            PrivilegeError: If the Windows machine environment cannot be written
        """
        plan = classify_env_vars(env_vars, self.separator)
        if not plan.bin_paths and default_bin is not None:
            plan.bin_paths = [str(default_bin)]

        if self.platform.is_windows:
            machine_path = self._read_machine_path()
            new_machine_path = rebuild_path(
                machine_path,
                plan.bin_paths,
                plan.exclude_keywords,
                self.separator,
                case_insensitive=True,
            )
            self._write_machine_env(toolchain, version, plan, new_machine_path)

        self._apply_process(plan)
        logger.debug(f"Environment applied for {toolchain} {version}")

    def _apply_process(self, plan: EnvPlan):
        if plan.home is not None:
            self.environ[plan.home.key] = plan.home.value
        for var in plan.extras:
            self.environ[var.key] = var.value
        self.environ[PATH_KEY] = rebuild_path(
            self.environ.get(PATH_KEY, ""),
            plan.bin_paths,
            plan.exclude_keywords,
            self.separator,
            case_insensitive=self.platform.is_windows,
        )

    def clear(self, env_vars: List[EnvVar]):
        """
        Undo a previously applied environment in the current process.

        The home variable and extras are unset and the bin paths are removed
        from PATH. Machine-scope variables on Windows are left in place.
        """
        plan = classify_env_vars(env_vars, self.separator)
        if plan.home is not None:
            self.environ.pop(plan.home.key, None)
        for var in plan.extras:
            self.environ.pop(var.key, None)
        if plan.bin_paths and PATH_KEY in self.environ:
            self.environ[PATH_KEY] = strip_path(
                self.environ[PATH_KEY],
                plan.bin_paths,
                self.separator,
                case_insensitive=self.platform.is_windows,
            )

    # ------------------------------------------------------------------
    # Windows machine scope
    # ------------------------------------------------------------------

    def _read_machine_path(self) -> str:
        """
        Read the machine-scope PATH.

        Raises:
            PrivilegeError: If PowerShell cannot be run
        """
        try:
            result = self.runner(
                [
                    "powershell",
                    "-NoProfile",
                    "-Command",
                    "[Environment]::GetEnvironmentVariable('Path', 'Machine')",
                ],
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise PrivilegeError(f"cannot run PowerShell: {e}") from e

        if result.returncode != 0:
            raise PrivilegeError(f"reading the system PATH failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def _build_script(
        self, toolchain: str, version: str, plan: EnvPlan, machine_path: str
    ) -> str:
        lines = []
        variables = list(plan.extras)
        if plan.home is not None:
            variables.insert(0, plan.home)
        for var in variables:
            lines.append(
                "[Environment]::SetEnvironmentVariable("
                f"{_ps_quote(var.key)}, {_ps_quote(var.value)}, 'Machine')"
            )
        lines.append(
            f"[Environment]::SetEnvironmentVariable('Path', {_ps_quote(machine_path)}, 'Machine')"
        )
        lines.append(f"Write-Host {_ps_quote(f'Switched to {toolchain} {version}')}")
        return "\n".join(lines) + "\n"

    def _write_machine_env(
        self, toolchain: str, version: str, plan: EnvPlan, machine_path: str
    ):
        """
        Write variables to the machine environment through an elevated script.

        Raises:
            PrivilegeError: If elevation is declined or the script fails
        """
        script = self._build_script(toolchain, version, plan, machine_path)
        fd, script_path = tempfile.mkstemp(prefix="svm_env_", suffix=".ps1")
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(script)

            launcher = (
                "$p = Start-Process powershell -Verb RunAs -Wait -PassThru "
                f"-ArgumentList '-NoProfile -ExecutionPolicy Bypass -File \"{script_path}\"'; "
                "exit $p.ExitCode"
            )
            try:
                result = self.runner(
                    ["powershell", "-NoProfile", "-Command", launcher],
                    capture_output=True,
                    text=True,
                )
            except OSError as e:
                raise PrivilegeError(f"cannot run PowerShell: {e}") from e

            if result.returncode != 0:
                raise PrivilegeError(result.stderr.strip() or f"exit code {result.returncode}")
        finally:
            Path(script_path).unlink(missing_ok=True)

        logger.info("System environment variables updated")


__all__ = [
    "EnvPlan",
    "EnvironmentApplier",
    "classify_env_vars",
    "rebuild_path",
    "strip_path",
]
