"""End-to-end browse sessions through ``run_browser`` with scripted collaborators.

The ssh source, fzf picker, rcu exporter and viewer are replaced by fakes so
whole sessions (startup refresh, browsing, export, exit code) run in-process.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from rmexport.app import EXIT_OK, EXIT_PICKER_FAILED, EXIT_REFRESH_FAILED, run_browser
from rmexport.cache import CacheManager, CacheStore
from rmexport.config import Settings
from rmexport.export import ExportError, ExportOutput
from rmexport.metadata_model import CollectionRecord, DocumentRecord, FetchError
from rmexport.picker import PickerError, PickRequest, PickResult


class _Source:
    def __init__(self) -> None:
        self.collections = [CollectionRecord("A", "Work", ""), CollectionRecord("B", "Drafts", "A")]
        self.documents = [DocumentRecord("D1", "Plan", "B")]
        self.calls = 0
        self.error: Exception | None = None

    def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.collections), list(self.documents)


class _Picker:
    """Plays back callables that receive the request and return a result."""

    def __init__(self, *script) -> None:
        self.script = list(script)
        self.requests: list[PickRequest] = []

    def __call__(self, request: PickRequest) -> PickResult:
        self.requests.append(request)
        return self.script.pop(0)(request)


def choose(*labels: str, key: str = ""):
    def respond(request: PickRequest) -> PickResult:
        by_label = {label: option_key for option_key, label in request.options}
        return PickResult(keys=tuple(by_label[label] for label in labels), activation_key=key)

    return respond


def press(key: str):
    return lambda _request: PickResult(activation_key=key)


def cancel(_request: PickRequest) -> PickResult:
    return PickResult(cancelled=True)


def interrupt(_request: PickRequest) -> PickResult:
    raise KeyboardInterrupt


class BrowseSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        root = Path(tmp.name)
        self.settings = Settings(
            ssh_host="tablet",
            remote_dir="/xochitl",
            cache_ttl_seconds=1200.0,
            cache_dir=root / "cache",
            export_dir=root / "view",
            save_dir=root / "save",
            viewer_command=None,
            rcu_command="rcu",
        )
        self.source = _Source()
        self.now = 10_000.0
        self.messages: list[str] = []
        self.export_calls: list[tuple[str, Path, str]] = []
        self.opened: list[Path] = []

    def _export(self, document_id: str, destination_dir: Path, base_name: str) -> ExportOutput:
        self.export_calls.append((document_id, destination_dir, base_name))
        return ExportOutput(path=destination_dir / f"{base_name}.pdf")

    def _open(self, path: Path) -> None:
        self.opened.append(path)

    def _run(self, picker: _Picker, force_refresh: bool = False) -> int:
        return run_browser(
            self.settings,
            force_refresh=force_refresh,
            fetch=self.source,
            pick=picker,
            export_document=self._export,
            open_file=self._open,
            clock=lambda: self.now,
            report=self.messages.append,
        )

    def _labels(self, request: PickRequest) -> list[str]:
        return [label for _key, label in request.options]

    def _seed_cache(self, refreshed_at: float) -> None:
        CacheManager(self.source, clock=lambda: refreshed_at, store=CacheStore(self.settings.cache_dir)).refresh()
        self.source.calls = 0

    def test_work_drafts_plan_scenario(self) -> None:
        picker = _Picker(
            choose("All Documents"),
            cancel,
            choose("Work"),
            choose("\U0001f4c1 Drafts"),
            choose("Plan"),
            cancel,
            cancel,
        )

        exit_code = self._run(picker)

        self.assertEqual(exit_code, EXIT_OK)
        requests = picker.requests
        self.assertEqual(self._labels(requests[0]), ["All Documents", "Work", "Work/Drafts"])
        self.assertEqual(self._labels(requests[1]), ["Plan"])
        self.assertEqual(self._labels(requests[3]), [".. (main menu)", "\U0001f4c1 Drafts"])
        self.assertEqual(self._labels(requests[4]), [".. (Work)", "Plan"])
        self.assertEqual(requests[4].prompt, "[Work/Drafts] ")
        self.assertEqual(self.export_calls, [("D1", self.settings.export_dir, "Plan")])
        self.assertEqual(self.opened, [self.settings.export_dir / "Plan.pdf"])
        self.assertEqual(self.source.calls, 1)
        self.assertIn("Loading data from reMarkable...", self.messages)

    def test_parent_entry_steps_up_one_level(self) -> None:
        picker = _Picker(choose("Work/Drafts"), choose(".. (Work)"), choose(".. (main menu)"), cancel)

        self.assertEqual(self._run(picker), EXIT_OK)

        self.assertEqual(picker.requests[1].prompt, "[Work/Drafts] ")
        self.assertEqual(picker.requests[2].prompt, "[Work] ")
        self.assertEqual(picker.requests[3].prompt, "Collection: ")

    def test_save_key_exports_to_save_directory(self) -> None:
        picker = _Picker(choose("Work/Drafts"), choose("Plan", key="ctrl-s"), cancel, cancel)

        self._run(picker)

        self.assertEqual(self.export_calls, [("D1", self.settings.save_dir, "Plan")])

    def test_fresh_persisted_cache_skips_fetch(self) -> None:
        self._seed_cache(refreshed_at=self.now - 10)

        self.assertEqual(self._run(_Picker(cancel)), EXIT_OK)

        self.assertEqual(self.source.calls, 0)

    def test_initial_fetch_failure_without_cache_exits_non_zero(self) -> None:
        self.source.error = FetchError("ssh failed")
        picker = _Picker()

        self.assertEqual(self._run(picker), EXIT_REFRESH_FAILED)

        self.assertEqual(picker.requests, [])
        self.assertTrue(any("ssh failed" in message for message in self.messages))

    def test_stale_cache_is_used_when_refresh_fails(self) -> None:
        self._seed_cache(refreshed_at=self.now - 5_000)
        self.source.error = FetchError("device asleep")
        picker = _Picker(cancel)

        self.assertEqual(self._run(picker), EXIT_OK)

        self.assertEqual(self.source.calls, 1)
        self.assertEqual(self._labels(picker.requests[0]), ["All Documents", "Work", "Work/Drafts"])

    def test_forced_refresh_failure_exits_non_zero_even_with_cache(self) -> None:
        self._seed_cache(refreshed_at=self.now - 10)
        self.source.error = FetchError("device asleep")

        self.assertEqual(self._run(_Picker(cancel), force_refresh=True), EXIT_REFRESH_FAILED)

    def test_forced_refresh_fetches_even_when_fresh(self) -> None:
        self._seed_cache(refreshed_at=self.now - 10)

        self._run(_Picker(cancel), force_refresh=True)

        self.assertEqual(self.source.calls, 1)

    def test_in_session_refresh_shows_new_data(self) -> None:
        self._seed_cache(refreshed_at=self.now - 10)
        self.source.collections.append(CollectionRecord("C", "Inbox", ""))
        picker = _Picker(press("ctrl-r"), cancel)

        self._run(picker)

        self.assertEqual(self.source.calls, 1)
        self.assertNotIn("Inbox", self._labels(picker.requests[0]))
        self.assertIn("Inbox", self._labels(picker.requests[1]))

    def test_in_session_refresh_failure_keeps_browsing(self) -> None:
        self._seed_cache(refreshed_at=self.now - 10)
        self.source.error = FetchError("timeout")
        picker = _Picker(press("ctrl-r"), choose("Work"), cancel, cancel)

        self.assertEqual(self._run(picker), EXIT_OK)

        self.assertTrue(any("Refresh failed" in message for message in self.messages))
        self.assertEqual(picker.requests[2].prompt, "[Work] ")

    def test_interrupt_exits_cleanly(self) -> None:
        self.assertEqual(self._run(_Picker(choose("Work"), interrupt)), EXIT_OK)

    def test_interrupt_during_refresh_exits_cleanly_without_cache(self) -> None:
        self.source.error = KeyboardInterrupt()

        self.assertEqual(self._run(_Picker()), EXIT_OK)
        self.assertIsNone(CacheStore(self.settings.cache_dir).load())

    def test_picker_failure_is_reported(self) -> None:
        def broken(_request: PickRequest) -> PickResult:
            raise PickerError("fzf is not installed.")

        self.assertEqual(self._run(_Picker(broken)), EXIT_PICKER_FAILED)
        self.assertIn("fzf is not installed.", self.messages)

    def test_export_failure_does_not_end_session(self) -> None:
        def failing_export(document_id: str, destination_dir: Path, base_name: str) -> ExportOutput:
            raise ExportError("no output file")

        picker = _Picker(choose("Work/Drafts"), choose("Plan"), cancel, cancel)
        exit_code = run_browser(
            self.settings,
            fetch=self.source,
            pick=picker,
            export_document=failing_export,
            open_file=self._open,
            clock=lambda: self.now,
            report=self.messages.append,
        )

        self.assertEqual(exit_code, EXIT_OK)
        self.assertEqual(self.opened, [])
        self.assertEqual(len(picker.requests), 4)


if __name__ == "__main__":
    unittest.main()
