"""Collection/document browse state machine over the metadata cache.

The navigator alternates between the root picker (``ALL`` plus every
collection by full path) and the inside of one collection (navigation entry,
subcollections, documents). Every visit rebuilds its entry list from the
cache. Each picker interaction yields one ``NavigationStep``; side effects
(export, cache refresh) are delegated to injected callbacks.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .cache import ALL_DOCUMENTS_ID, ALL_DOCUMENTS_LABEL, CacheManager
from .metadata_model import last_path_segment
from .picker import Pick, PickRequest, PickResult

EXPORT_VARIANT_VIEW = "view"
EXPORT_VARIANT_SAVE = "save"
SAVE_KEY = "ctrl-s"
REFRESH_KEY = "ctrl-r"
EXPORT_VARIANT_BY_KEY = {
    "": EXPORT_VARIANT_VIEW,
    SAVE_KEY: EXPORT_VARIANT_SAVE,
}

ROOT_PROMPT = "Collection: "
ROOT_HEADER = "Enter: Browse | Ctrl-R: Refresh | Esc/Ctrl-C: Quit"
COLLECTION_HEADER = "Enter: Export | Ctrl-S: Save | Tab: Select | Esc: Main menu"
FOLDER_MARK = "\U0001f4c1"


@dataclass(frozen=True)
class NavigationPosition:
    """Current browse location; an empty id means the root picker."""

    collection_id: str = ""
    display_name: str = ""

    @property
    def at_root_picker(self) -> bool:
        return not self.collection_id


ROOT_PICKER = NavigationPosition()


@dataclass(frozen=True)
class ParentNav:
    collection_id: str


@dataclass(frozen=True)
class RootNav:
    pass


@dataclass(frozen=True)
class CollectionNav:
    collection_id: str
    name: str


@dataclass(frozen=True)
class DocumentItem:
    document_id: str
    name: str


NavigationEntry = ParentNav | RootNav | CollectionNav | DocumentItem


@dataclass(frozen=True)
class ExportRequest:
    """Documents chosen for export plus the requested destination variant."""

    documents: tuple[tuple[str, str], ...]
    variant: str = EXPORT_VARIANT_VIEW


@dataclass(frozen=True)
class NavigationStep:
    """Result of one picker interaction."""

    position: NavigationPosition
    export_request: ExportRequest | None = None
    refresh_requested: bool = False
    finished: bool = False


def entry_label(entry: NavigationEntry, parent_name: str = "") -> str:
    if isinstance(entry, ParentNav):
        return f".. ({parent_name})"
    if isinstance(entry, RootNav):
        return ".. (main menu)"
    if isinstance(entry, CollectionNav):
        return f"{FOLDER_MARK} {entry.name}"
    return entry.name


class TreeNavigator:
    """Drive root-picker and in-collection browsing through ``pick``.

    ``on_export`` receives export requests; ``on_refresh`` (optional) is
    called when the user asks for a forced cache refresh at the root picker.
    """

    def __init__(
        self,
        cache: CacheManager,
        pick: Pick,
        *,
        on_export: Callable[[ExportRequest], object],
        on_refresh: Callable[[], None] | None = None,
    ) -> None:
        self.cache = cache
        self.pick = pick
        self.on_export = on_export
        self.on_refresh = on_refresh

    def enter(self, collection_id: str) -> NavigationPosition:
        if not collection_id:
            return ROOT_PICKER
        return NavigationPosition(collection_id=collection_id, display_name=self.cache.display_name(collection_id))

    def root_options(self) -> list[tuple[str, str]]:
        """Return root picker rows: ``ALL`` first, then collections by full path."""
        return [(ALL_DOCUMENTS_ID, ALL_DOCUMENTS_LABEL), *self.cache.collections_sorted_by_path()]

    def entries_for(self, collection_id: str) -> list[tuple[NavigationEntry, str]]:
        """Return ``(entry, label)`` rows for the inside of ``collection_id``."""
        if collection_id == ALL_DOCUMENTS_ID:
            return [
                (DocumentItem(document_id=doc_id, name=name), name)
                for doc_id, name in self.cache.all_documents()
            ]

        rows: list[tuple[NavigationEntry, str]] = []
        parent_id = self.cache.parent_of(collection_id)
        if parent_id:
            parent_name = last_path_segment(self.cache.display_name(parent_id))
            nav: NavigationEntry = ParentNav(collection_id=parent_id)
            rows.append((nav, entry_label(nav, parent_name)))
        else:
            nav = RootNav()
            rows.append((nav, entry_label(nav)))

        for sub_id, name in self.cache.subcollections_of(collection_id):
            sub = CollectionNav(collection_id=sub_id, name=name)
            rows.append((sub, entry_label(sub)))
        for doc_id, name in self.cache.documents_in(collection_id):
            doc = DocumentItem(document_id=doc_id, name=name)
            rows.append((doc, entry_label(doc)))
        return rows

    def select_root(self, result: PickResult) -> NavigationStep:
        """Apply a root-picker outcome."""
        if result.cancelled:
            return NavigationStep(position=ROOT_PICKER, finished=True)
        if result.activation_key == REFRESH_KEY:
            return NavigationStep(position=ROOT_PICKER, refresh_requested=True)
        if not result.keys:
            return NavigationStep(position=ROOT_PICKER)
        return NavigationStep(position=self.enter(result.keys[0]))

    def select_entries(
        self,
        position: NavigationPosition,
        selected: list[NavigationEntry],
        result: PickResult,
    ) -> NavigationStep:
        """Apply an in-collection outcome for the already-resolved ``selected`` entries.

        Any selected documents win over navigation entries and become one
        export request; otherwise the first navigation entry decides the move.
        """
        if result.cancelled:
            return NavigationStep(position=ROOT_PICKER)
        documents = tuple(
            (entry.document_id, entry.name) for entry in selected if isinstance(entry, DocumentItem)
        )
        if documents:
            variant = EXPORT_VARIANT_BY_KEY.get(result.activation_key, EXPORT_VARIANT_VIEW)
            return NavigationStep(position=position, export_request=ExportRequest(documents=documents, variant=variant))
        if not selected:
            return NavigationStep(position=position)

        target = selected[0]
        if isinstance(target, ParentNav):
            return NavigationStep(position=self.enter(target.collection_id))
        if isinstance(target, CollectionNav):
            return NavigationStep(position=self.enter(target.collection_id))
        return NavigationStep(position=ROOT_PICKER)

    def step(self, position: NavigationPosition) -> NavigationStep:
        """Run one picker interaction for ``position``."""
        if position.at_root_picker:
            result = self.pick(
                PickRequest(
                    options=tuple(self.root_options()),
                    prompt=ROOT_PROMPT,
                    header=ROOT_HEADER,
                    expect_keys=(REFRESH_KEY,),
                )
            )
            return self.select_root(result)

        rows = self.entries_for(position.collection_id)
        entries_by_key = {str(index): entry for index, (entry, _label) in enumerate(rows)}
        result = self.pick(
            PickRequest(
                options=tuple((str(index), label) for index, (_entry, label) in enumerate(rows)),
                prompt=f"[{position.display_name}] ",
                header=COLLECTION_HEADER,
                multi=True,
                expect_keys=(SAVE_KEY,),
            )
        )
        selected = [entries_by_key[key] for key in result.keys if key in entries_by_key]
        return self.select_entries(position, selected, result)

    def run(self, position: NavigationPosition = ROOT_PICKER) -> None:
        """Loop until the user cancels the root picker."""
        while True:
            step = self.step(position)
            if step.finished:
                return
            if step.refresh_requested and self.on_refresh is not None:
                self.on_refresh()
            if step.export_request is not None:
                self.on_export(step.export_request)
            position = step.position


__all__ = [
    "EXPORT_VARIANT_SAVE",
    "EXPORT_VARIANT_VIEW",
    "REFRESH_KEY",
    "SAVE_KEY",
    "ROOT_PICKER",
    "CollectionNav",
    "DocumentItem",
    "ExportRequest",
    "NavigationEntry",
    "NavigationPosition",
    "NavigationStep",
    "ParentNav",
    "RootNav",
    "TreeNavigator",
    "entry_label",
]
