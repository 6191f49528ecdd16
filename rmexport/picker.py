"""Interactive list picker backed by ``fzf``.

Rows are fed as ``key\\tlabel`` with only the label visible. The picker
returns the chosen keys plus the activation key that confirmed the choice.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

FZF_EXIT_NO_MATCH = 1
FZF_EXIT_INTERRUPTED = 130


class PickerError(RuntimeError):
    """Raised when the picker cannot be run or fails unexpectedly."""


@dataclass(frozen=True)
class PickRequest:
    """One picker invocation: ordered ``(key, label)`` rows plus chrome."""

    options: tuple[tuple[str, str], ...]
    prompt: str
    header: str = ""
    multi: bool = False
    expect_keys: tuple[str, ...] = ()


@dataclass(frozen=True)
class PickResult:
    """Picker outcome.

    ``activation_key`` is empty for the default accept key (Enter).
    """

    keys: tuple[str, ...] = ()
    activation_key: str = ""
    cancelled: bool = False


Pick = Callable[[PickRequest], PickResult]


def _clean_label(label: str) -> str:
    return label.replace("\t", " ").replace("\r", " ").replace("\n", " ")


def build_fzf_command(request: PickRequest, fzf_command: str = "fzf") -> list[str]:
    cmd = [
        fzf_command,
        f"--prompt={request.prompt}",
        "--delimiter=\t",
        "--with-nth=2..",
        "--tabstop=1",
    ]
    if request.header:
        cmd.append(f"--header={request.header}")
    if request.multi:
        cmd.append("--multi")
    if request.expect_keys:
        cmd.append(f"--expect={','.join(request.expect_keys)}")
    return cmd


def parse_fzf_output(output: str, expect_keys: tuple[str, ...] = ()) -> PickResult:
    """Parse fzf stdout into selected keys and the activation key."""
    lines = output.splitlines()
    activation_key = ""
    if expect_keys and lines:
        activation_key = lines[0].strip()
        lines = lines[1:]
    keys = tuple(line.split("\t", 1)[0] for line in lines if line)
    return PickResult(keys=keys, activation_key=activation_key)


@dataclass(frozen=True)
class FzfPicker:
    """``Pick`` implementation that shells out to fzf on the controlling tty."""

    fzf_command: str = "fzf"

    def __call__(self, request: PickRequest) -> PickResult:
        if shutil.which(self.fzf_command) is None:
            raise PickerError(f"{self.fzf_command} is not installed.")
        rows = "".join(f"{key}\t{_clean_label(label)}\n" for key, label in request.options)
        try:
            proc = subprocess.run(
                build_fzf_command(request, self.fzf_command),
                input=rows,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise PickerError(f"failed to run {self.fzf_command}: {exc}") from exc

        if proc.returncode == FZF_EXIT_INTERRUPTED:
            return PickResult(cancelled=True)
        if proc.returncode == FZF_EXIT_NO_MATCH:
            return parse_fzf_output(proc.stdout, request.expect_keys)
        if proc.returncode != 0:
            raise PickerError(f"{self.fzf_command} failed with exit code {proc.returncode}")
        return parse_fzf_output(proc.stdout, request.expect_keys)


__all__ = [
    "FzfPicker",
    "Pick",
    "PickRequest",
    "PickResult",
    "PickerError",
    "build_fzf_command",
    "parse_fzf_output",
]
