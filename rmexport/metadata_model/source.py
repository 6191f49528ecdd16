"""Remote metadata acquisition over ssh.

One remote shell pass prints every ``*.metadata`` file as ``<id>\\t<json>``.
Records are decoded locally and trashed/deleted entries are dropped.
"""

from __future__ import annotations

import json
import shlex
import shutil
import subprocess
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .types import CollectionRecord, DocumentRecord, is_hidden_record

DEFAULT_REMOTE_DIR = "/home/root/.local/share/remarkable/xochitl"
PROGRESS_EVERY = 30
COLLECTION_TYPE = "CollectionType"
DOCUMENT_TYPE = "DocumentType"

FetchResult = tuple[list[CollectionRecord], list[DocumentRecord]]
MetadataSource = Callable[[], FetchResult]


class FetchError(RuntimeError):
    """Raised when remote metadata cannot be fetched or decoded."""


def remote_listing_script(remote_dir: str, progress_every: int = PROGRESS_EVERY) -> str:
    """Build the POSIX shell script run on the device."""
    return (
        f"cd {shlex.quote(remote_dir)} || exit 1\n"
        "count=0\n"
        "total=$(ls *.metadata 2>/dev/null | wc -l)\n"
        "for f in *.metadata; do\n"
        '    [ -e "$f" ] || continue\n'
        "    count=$((count + 1))\n"
        f"    if [ $((count % {progress_every})) -eq 0 ]; then\n"
        '        printf "\\rLoading metadata... %d/%d" "$count" "$total" >&2\n'
        "    fi\n"
        '    printf "%s\\t" "${f%.metadata}"\n'
        "    tr -d '\\n\\r' < \"$f\"\n"
        "    printf '\\n'\n"
        "done\n"
        'printf "\\rLoading metadata... Done! %d items\\n" "$total" >&2\n'
    )


def _string_field(payload: dict[str, object], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


def parse_metadata_listing(lines: Iterable[str]) -> FetchResult:
    """Decode ``<id>\\t<json>`` rows into visible collection/document records.

    Blank rows are skipped. Rows without a tab, with undecodable JSON, or whose
    JSON is not an object raise ``FetchError``. Unknown record types are ignored.
    """
    collections: list[CollectionRecord] = []
    documents: list[DocumentRecord] = []
    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        record_id, sep, body = line.partition("\t")
        record_id = record_id.strip()
        if not sep or not record_id:
            raise FetchError(f"malformed metadata row {line_number}: {line[:80]!r}")
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise FetchError(f"invalid metadata JSON for {record_id}: {exc}") from exc
        if not isinstance(payload, dict):
            raise FetchError(f"metadata for {record_id} is not a JSON object")

        record_type = _string_field(payload, "type")
        name = _string_field(payload, "visibleName")
        parent_id = _string_field(payload, "parent")
        deleted = payload.get("deleted") is True
        if is_hidden_record(parent_id, deleted):
            continue
        if record_type == COLLECTION_TYPE:
            collections.append(CollectionRecord(id=record_id, name=name, parent_id=parent_id))
        elif record_type == DOCUMENT_TYPE:
            documents.append(DocumentRecord(id=record_id, name=name, parent_id=parent_id))
    return collections, documents


@dataclass(frozen=True)
class SshMetadataSource:
    """Callable metadata source that enumerates the device over ``ssh``.

    Remote progress output goes straight to the user's stderr.
    """

    host: str
    remote_dir: str = DEFAULT_REMOTE_DIR
    ssh_command: str = "ssh"

    def command(self) -> list[str]:
        return [self.ssh_command, self.host, remote_listing_script(self.remote_dir)]

    def __call__(self) -> FetchResult:
        if shutil.which(self.ssh_command) is None:
            raise FetchError(f"{self.ssh_command} is not installed.")
        try:
            proc = subprocess.run(
                self.command(),
                stdout=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise FetchError(f"failed to run {self.ssh_command}: {exc}") from exc
        if proc.returncode != 0:
            raise FetchError(f"{self.ssh_command} {self.host} failed with exit code {proc.returncode}")
        return parse_metadata_listing(proc.stdout.splitlines())


__all__ = [
    "DEFAULT_REMOTE_DIR",
    "FetchError",
    "FetchResult",
    "MetadataSource",
    "SshMetadataSource",
    "parse_metadata_listing",
    "remote_listing_script",
]
