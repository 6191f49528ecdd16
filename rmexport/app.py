"""Runtime composition layer for rmexport.

Builds the cache, picker, exporter and navigator from settings, performs the
startup refresh, and runs the browse loop. This is the only module that maps
failures and interrupts to process exit codes.
"""

from __future__ import annotations

import signal
import time
from collections.abc import Callable
from functools import partial

from .cache import CacheManager, CacheStore
from .config import Settings
from .console import write_message
from .export import (
    DEFAULT_RCU_COMMAND,
    ExportDocument,
    ExportOrchestrator,
    OpenFile,
    RcuExporter,
    ViewerOpener,
    split_command,
)
from .metadata_model import FetchError, MetadataSource, SshMetadataSource
from .navigator import EXPORT_VARIANT_SAVE, EXPORT_VARIANT_VIEW, TreeNavigator
from .picker import FzfPicker, Pick, PickerError

EXIT_OK = 0
EXIT_REFRESH_FAILED = 1
EXIT_PICKER_FAILED = 3


def _raise_keyboard_interrupt(_signum: int, _frame: object) -> None:
    raise KeyboardInterrupt


def install_signal_handlers() -> None:
    """Route SIGTERM through the same clean-exit path as Ctrl-C."""
    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)


def prepare_cache(cache: CacheManager, force_refresh: bool, report: Callable[[str], None]) -> bool:
    """Refresh a stale or forced cache before browsing.

    Returns ``False`` when there is nothing usable to browse: the fetch failed
    and either no cache exists yet or the refresh was explicitly forced.
    """
    if not force_refresh and cache.is_fresh():
        return True
    report("Loading data from reMarkable...")
    try:
        cache.refresh(force=True)
    except FetchError as exc:
        report(f"Failed to load data from reMarkable: {exc}")
        if force_refresh or not cache.has_data:
            return False
        report("Using previously cached data.")
    return True


def refresh_in_session(cache: CacheManager, report: Callable[[str], None]) -> None:
    """Forced refresh requested from the root picker; failures keep the old data."""
    report("Loading data from reMarkable...")
    try:
        cache.refresh(force=True)
    except FetchError as exc:
        report(f"Refresh failed, keeping cached data: {exc}")


def run_browser(
    settings: Settings,
    *,
    force_refresh: bool = False,
    fetch: MetadataSource | None = None,
    pick: Pick | None = None,
    export_document: ExportDocument | None = None,
    open_file: OpenFile | None = None,
    clock: Callable[[], float] = time.time,
    report: Callable[[str], None] = write_message,
) -> int:
    """Run one interactive browse session and return the process exit code.

    Collaborators default to the ssh source, fzf picker, rcu exporter and
    viewer opener; tests inject fakes.
    """
    if fetch is None:
        fetch = SshMetadataSource(host=settings.ssh_host, remote_dir=settings.remote_dir)
    if pick is None:
        pick = FzfPicker()
    if export_document is None:
        export_document = RcuExporter(command=split_command(settings.rcu_command) or DEFAULT_RCU_COMMAND)
    if open_file is None:
        open_file = ViewerOpener(command=split_command(settings.viewer_command))

    try:
        cache = CacheManager(
            fetch,
            ttl_seconds=settings.cache_ttl_seconds,
            clock=clock,
            store=CacheStore(settings.cache_dir),
            report=report,
        )
        if not prepare_cache(cache, force_refresh, report):
            return EXIT_REFRESH_FAILED

        orchestrator = ExportOrchestrator(
            export_document,
            open_file,
            {
                EXPORT_VARIANT_VIEW: settings.export_dir,
                EXPORT_VARIANT_SAVE: settings.save_dir,
            },
            report=report,
        )
        navigator = TreeNavigator(
            cache,
            pick,
            on_export=orchestrator,
            on_refresh=partial(refresh_in_session, cache, report),
        )
        navigator.run()
    except KeyboardInterrupt:
        return EXIT_OK
    except PickerError as exc:
        report(str(exc))
        return EXIT_PICKER_FAILED
    return EXIT_OK


__all__ = [
    "EXIT_OK",
    "EXIT_PICKER_FAILED",
    "EXIT_REFRESH_FAILED",
    "install_signal_handlers",
    "prepare_cache",
    "refresh_in_session",
    "run_browser",
]
