"""
Template Composer Kernel — Editing Session

The stateful shell around the pure Mutation API. One session per open
template. It owns:

  template            — the current immutable snapshot
  selection           — at most one focused section or item
  current_page_index  — the page shown on the canvas
  revision            — bumped on every applied document change

Selection is tracked by node id, not by index. After every applied
mutation it is re-resolved against the new snapshot, so a deletion that
shifts indices is repaired and a selection whose node disappeared is
cleared.

Rejected mutations leave everything untouched and are logged at debug level.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from composer.kernel import mutations
from composer.kernel.document import (
    ensure_page,
    item_at,
    locate_item,
    locate_section,
    new_template,
)
from composer.kernel.types import MutationResult, Selection, Template, VariableDeclaration

logger = logging.getLogger(__name__)

Listener = Callable[["EditSession"], None]


class EditSession:
    def __init__(self, template: Template | None = None):
        self._template = ensure_page(template if template is not None else new_template())
        self._section_id: str | None = None
        self._item_id: str | None = None
        self._listeners: list[Listener] = []
        self.current_page_index = 0
        self.revision = 0
        self.last_error: str | None = None

    # -- State ---------------------------------------------------------------

    @property
    def template(self) -> Template:
        return self._template

    @property
    def selection(self) -> Selection | None:
        if self._item_id is not None:
            location = locate_item(self._template, self._item_id)
            return Selection(*location) if location else None
        if self._section_id is not None:
            location = locate_section(self._template, self._section_id)
            return Selection(*location) if location else None
        return None

    @property
    def selected_id(self) -> str | None:
        return self._item_id or self._section_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _clear_selection(self) -> None:
        self._section_id = None
        self._item_id = None

    def _reconcile(self) -> None:
        if self._item_id is not None and locate_item(self._template, self._item_id) is None:
            self._clear_selection()
        if self._section_id is not None and locate_section(self._template, self._section_id) is None:
            self._clear_selection()
        last_page = len(self._template.page_ids) - 1
        if self.current_page_index > last_page:
            self.current_page_index = last_page

    def _commit(self, result: MutationResult) -> MutationResult:
        if not result.applied:
            self.last_error = result.error
            logger.debug("session: rejected mutation: %s", result.error)
            return result
        self.last_error = None
        self._template = result.template
        self.revision += 1
        self._reconcile()
        self._notify()
        return result

    def _page(self, page_index: int | None) -> int:
        return self.current_page_index if page_index is None else page_index

    # -- Selection and navigation -------------------------------------------

    def select(self, section_id: str | None) -> Selection | None:
        """Focus a section by id, or clear the selection with None."""
        location = locate_section(self._template, section_id) if section_id else None
        self._clear_selection()
        if location is not None:
            self._section_id = section_id
            self.current_page_index = location[0]
        self._notify()
        return self.selection

    def select_item(self, page_index: int, section_index: int, item_index: int) -> Selection | None:
        item = item_at(self._template, page_index, section_index, item_index)
        self._clear_selection()
        if item is not None:
            self._item_id = item.id
            self.current_page_index = page_index
        self._notify()
        return self.selection

    def set_current_page(self, page_index: int) -> bool:
        if not 0 <= page_index < len(self._template.page_ids):
            return False
        self.current_page_index = page_index
        self._notify()
        return True

    # -- Template ------------------------------------------------------------

    def update_template(self, updates: dict[str, Any]) -> MutationResult:
        return self._commit(mutations.update_template(self._template, updates))

    def update_settings(self, updates: dict[str, Any]) -> MutationResult:
        return self._commit(mutations.update_settings(self._template, updates))

    def declare_variable(self, declaration: VariableDeclaration | dict[str, Any]) -> MutationResult:
        return self._commit(mutations.declare_variable(self._template, declaration))

    def remove_variable(self, name: str) -> MutationResult:
        return self._commit(mutations.remove_variable(self._template, name))

    def set_published(self, published: bool) -> MutationResult:
        return self._commit(mutations.set_published(self._template, published))

    # -- Pages ---------------------------------------------------------------

    def add_page(self) -> MutationResult:
        """Append a page, move to it and drop the selection."""
        result = mutations.add_page(self._template)
        if result.applied:
            self._clear_selection()
            self.current_page_index = len(result.template.page_ids) - 1
        return self._commit(result)

    def update_page(self, updates: dict[str, Any], page_index: int | None = None) -> MutationResult:
        return self._commit(mutations.update_page(self._template, self._page(page_index), updates))

    def delete_page(self, page_index: int | None = None) -> MutationResult:
        return self._commit(mutations.delete_page(self._template, self._page(page_index)))

    # -- Sections ------------------------------------------------------------

    def add_section(self, page_index: int | None = None) -> MutationResult:
        return self._commit(mutations.add_section(self._template, self._page(page_index)))

    def update_section(self, section_id: str, updates: dict[str, Any]) -> MutationResult:
        return self._commit(mutations.update_section(self._template, section_id, updates))

    def move_section(self, section_id: str, x: float, y: float) -> MutationResult:
        return self._commit(mutations.move_section(self._template, section_id, x, y))

    def resize_section(self, section_id: str, width: float, height: float) -> MutationResult:
        return self._commit(mutations.resize_section(self._template, section_id, width, height))

    def bring_section_to_front(self, section_id: str) -> MutationResult:
        return self._commit(mutations.bring_section_to_front(self._template, section_id))

    def reorder_section(self, section_id: str, new_index: int) -> MutationResult:
        return self._commit(mutations.reorder_section(self._template, section_id, new_index))

    def delete_section(self, section_id: str) -> MutationResult:
        return self._commit(mutations.delete_section(self._template, section_id))

    def duplicate_section(self, section_id: str) -> MutationResult:
        """Clone a section and select the copy."""
        result = mutations.duplicate_section(self._template, section_id)
        if result.applied:
            self._clear_selection()
            self._section_id = result.target_id
        return self._commit(result)

    def add_section_preset(self, preset: str, page_index: int | None = None) -> MutationResult:
        """Append a pre-configured contract section and select it."""
        result = mutations.add_section_preset(self._template, self._page(page_index), preset)
        if result.applied:
            self._clear_selection()
            self._section_id = result.target_id
        return self._commit(result)

    # -- Items ---------------------------------------------------------------

    def add_item(self, section_index: int, item_type: str, page_index: int | None = None) -> MutationResult:
        result = mutations.add_item(self._template, self._page(page_index), section_index, item_type)
        return self._commit(self._focus_item(result))

    def add_item_to_last_section(self, item_type: str, page_index: int | None = None) -> MutationResult:
        """Append a typed item to the page's last section and select it."""
        result = mutations.add_item_to_last_section(self._template, self._page(page_index), item_type)
        return self._commit(self._focus_item(result))

    def update_item(
        self,
        section_index: int,
        item_index: int,
        updates: dict[str, Any],
        page_index: int | None = None,
    ) -> MutationResult:
        return self._commit(
            mutations.update_item(self._template, self._page(page_index), section_index, item_index, updates)
        )

    def delete_item(self, section_index: int, item_index: int, page_index: int | None = None) -> MutationResult:
        return self._commit(
            mutations.delete_item(self._template, self._page(page_index), section_index, item_index)
        )

    def duplicate_item(self, section_index: int, item_index: int, page_index: int | None = None) -> MutationResult:
        result = mutations.duplicate_item(self._template, self._page(page_index), section_index, item_index)
        return self._commit(self._focus_item(result))

    def _focus_item(self, result: MutationResult) -> MutationResult:
        if result.applied:
            self._clear_selection()
            self._item_id = result.target_id
        return result

    # -- Whole-document replacement -----------------------------------------

    def load(self, template: Template) -> None:
        """Replace the document, e.g. after fetching it. Selection and page reset."""
        self._template = ensure_page(template)
        self._clear_selection()
        self.current_page_index = 0
        self.revision += 1
        self._notify()

    def apply_remote(self, saved: Template, issued_revision: int) -> bool:
        """
        Apply a persisted snapshot returned for `issued_revision`.

        When the session moved on while the request was in flight only the
        backend identity is taken, so local edits survive and the next save
        updates instead of creating. Returns True when the snapshot was applied.
        """
        if self.revision == issued_revision:
            self._template = ensure_page(saved)
            self._reconcile()
            self._notify()
            return True

        if saved.id is not None and saved.id != self._template.id:
            logger.info(
                "session: stale response for revision %d (now %d), binding id=%s only",
                issued_revision,
                self.revision,
                saved.id,
            )
            self.bind_remote_id(saved.id)
        return False

    def bind_remote_id(self, template_id: str) -> bool:
        """Adopt the backend id without touching content. Revision is unchanged."""
        if not template_id or template_id == self._template.id:
            return False
        self._template = replace(self._template, id=template_id)
        self._notify()
        return True
