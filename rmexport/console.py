"""User-facing status lines written to stderr."""

from __future__ import annotations

import sys


def write_message(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")
    sys.stderr.flush()
