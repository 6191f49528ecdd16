"""Document export and viewer launch for selected documents.

Exports run one document at a time through ``rcu``; every document that
produced a file is then opened in the viewer, in selection order. Failures are
reported per document and never abort the remaining exports.
"""

from __future__ import annotations

import re
import shlex
import shutil
import subprocess
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from .console import write_message
from .navigator import EXPORT_VARIANT_VIEW, ExportRequest

EXPORT_SUFFIX = ".pdf"
DEFAULT_RCU_COMMAND = ("rcu",)
RCU_EXPORT_ARGS = ("--cli", "--no-check-compat", "--autoconnect", "--export-pdf-v")
VIEWER_CANDIDATES = ("google-chrome", "google-chrome-stable", "xdg-open", "open")

_UNSAFE_NAME_CHARS_RE = re.compile(r"[^A-Za-z0-9.,_ -]")
NOISY_DIAGNOSTIC_RE = re.compile(
    r"could not get|Some data|template broken|cat: can't open|set_color_by_index|==.*==>|^saving$"
)


class ExportError(RuntimeError):
    """Raised when the export tool does not produce an output file."""

    def __init__(self, message: str, diagnostics: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


@dataclass(frozen=True)
class ExportOutput:
    """Exported file location plus raw tool output lines."""

    path: Path
    diagnostics: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExportResult:
    """Per-document outcome; exactly one of ``path``/``error`` is set."""

    document_id: str
    name: str
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.path is not None


ExportDocument = Callable[[str, Path, str], ExportOutput]
OpenFile = Callable[[Path], str | None]


def sanitize_export_name(name: str, fallback: str = "document") -> str:
    """Return a filesystem-safe base name for ``name``.

    Keeps ASCII alphanumerics and ``.,_ -``, turns spaces into underscores and
    strips leading dots. ``fallback`` is used when nothing survives.
    """
    safe = _UNSAFE_NAME_CHARS_RE.sub("", name).replace(" ", "_").lstrip(".")
    return safe or fallback


def unique_base_name(base_name: str, taken: set[str]) -> str:
    """Return ``base_name``, or ``base_name_2``, ``_3``... if already in ``taken``.

    Comparison is case-insensitive; the chosen name is added to ``taken``.
    """
    candidate = base_name
    suffix = 2
    while candidate.casefold() in taken:
        candidate = f"{base_name}_{suffix}"
        suffix += 1
    taken.add(candidate.casefold())
    return candidate


def filter_diagnostics(lines: Iterable[str]) -> list[str]:
    """Drop blank and known-noisy export tool output lines."""
    kept: list[str] = []
    for raw in lines:
        line = raw.rstrip()
        if not line.strip() or NOISY_DIAGNOSTIC_RE.search(line):
            continue
        kept.append(line)
    return kept


@dataclass(frozen=True)
class RcuExporter:
    """``ExportDocument`` implementation running the rcu command-line exporter."""

    command: tuple[str, ...] = DEFAULT_RCU_COMMAND

    def output_path(self, destination_dir: Path, base_name: str) -> Path:
        return destination_dir / f"{base_name}{EXPORT_SUFFIX}"

    def __call__(self, document_id: str, destination_dir: Path, base_name: str) -> ExportOutput:
        if not self.command or shutil.which(self.command[0]) is None:
            raise ExportError(f"{self.command[0] if self.command else 'rcu'} is not installed.")
        target = self.output_path(destination_dir, base_name)
        try:
            proc = subprocess.run(
                [*self.command, *RCU_EXPORT_ARGS, document_id, str(target)],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ExportError(f"failed to run {self.command[0]}: {exc}") from exc

        diagnostics = tuple(proc.stdout.splitlines())
        if proc.returncode != 0:
            raise ExportError(f"{self.command[0]} failed with exit code {proc.returncode}", diagnostics)
        if not target.is_file():
            raise ExportError(f"no output file at {target}", diagnostics)
        return ExportOutput(path=target.resolve(), diagnostics=diagnostics)


@dataclass(frozen=True)
class ViewerOpener:
    """``OpenFile`` implementation launching a detached viewer process.

    ``command`` overrides viewer discovery. Returns an error message instead
    of raising when no viewer can be launched.
    """

    command: tuple[str, ...] = ()

    def resolve_command(self) -> tuple[str, ...] | None:
        if self.command:
            return self.command
        for candidate in VIEWER_CANDIDATES:
            if shutil.which(candidate) is not None:
                return (candidate,)
        return None

    def __call__(self, path: Path) -> str | None:
        cmd = self.resolve_command()
        if cmd is None:
            return "Cannot open: no viewer found."
        try:
            subprocess.Popen(
                [*cmd, str(path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            return f"Failed to launch viewer: {exc}"
        return None


def split_command(value: str | None) -> tuple[str, ...]:
    """shlex-split a configured command line; empty or invalid input gives ``()``."""
    if not value:
        return ()
    try:
        return tuple(shlex.split(value))
    except ValueError:
        return ()


class ExportOrchestrator:
    """Export every document of an ``ExportRequest`` and open the results."""

    def __init__(
        self,
        export_document: ExportDocument,
        open_file: OpenFile,
        destinations: dict[str, Path],
        *,
        report: Callable[[str], None] = write_message,
    ) -> None:
        self.export_document = export_document
        self.open_file = open_file
        self.destinations = dict(destinations)
        self.report = report

    def destination_for(self, variant: str) -> Path:
        destination = self.destinations.get(variant)
        if destination is None:
            destination = self.destinations[EXPORT_VARIANT_VIEW]
        return destination

    def export_one(
        self,
        document_id: str,
        name: str,
        destination_dir: Path,
        base_name: str | None = None,
    ) -> ExportResult:
        if base_name is None:
            base_name = sanitize_export_name(name, fallback=sanitize_export_name(document_id))
        self.report(f"Exporting '{name}'...")
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
            output = self.export_document(document_id, destination_dir, base_name)
        except ExportError as exc:
            for line in filter_diagnostics(exc.diagnostics):
                self.report(line)
            self.report(f"Export failed for '{name}': {exc}")
            return ExportResult(document_id=document_id, name=name, error=str(exc))
        except OSError as exc:
            self.report(f"Export failed for '{name}': {exc}")
            return ExportResult(document_id=document_id, name=name, error=str(exc))

        for line in filter_diagnostics(output.diagnostics):
            self.report(line)
        self.report(f"Done! Exported to: {output.path}")
        return ExportResult(document_id=document_id, name=name, path=output.path)

    def __call__(self, request: ExportRequest) -> list[ExportResult]:
        destination_dir = self.destination_for(request.variant)
        taken: set[str] = set()
        results = []
        for document_id, name in request.documents:
            base_name = sanitize_export_name(name, fallback=sanitize_export_name(document_id))
            results.append(self.export_one(document_id, name, destination_dir, unique_base_name(base_name, taken)))
        for result in results:
            if result.path is None:
                continue
            message = self.open_file(result.path)
            if message:
                self.report(message)
        return results


__all__ = [
    "DEFAULT_RCU_COMMAND",
    "EXPORT_SUFFIX",
    "ExportDocument",
    "ExportError",
    "ExportOrchestrator",
    "ExportOutput",
    "ExportResult",
    "OpenFile",
    "RcuExporter",
    "ViewerOpener",
    "filter_diagnostics",
    "sanitize_export_name",
    "split_command",
    "unique_base_name",
]
