"""Generic CRUD widget bound to one :class:`TableFacade`.

The widget keeps no state between requests except what it stores in its
session section (sort, page, items per page). Every ``handle_*`` method
mutates that state and/or calls the facade, then records in ``self.state``
which regions of the rendered widget must be redrawn, which flash messages to
show and whether the host page should navigate elsewhere.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException
from pydantic import ValidationError

from app.config import settings
from app.metrics import observe_crud_action
from app.schemas.crud import ItemForm, SortSpec
from app.services.paginator import Paginator, build_paginator
from app.services.session_store import SessionSection, SessionStore
from app.services.table_facade import (
    ConstraintViolation,
    InvalidArgument,
    TableFacade,
    coerce_positive_int,
)

logger = logging.getLogger(__name__)

REGION_FLASH = "flash"
REGION_ITEM_TABLE = "item-table"
REGION_PAGINATOR = "paginator"
REGION_EDIT_FORM = "edit-form"
REGION_CONFIRM_FORM = "confirm-form"

FLASH_SUCCESS = "success"
FLASH_ERROR = "error"

ITEM_NOT_FOUND = "Item does not exist!"
DELETE_BLOCKED = "The list cannot be deleted because it contains data!"
UPDATED = "The item has been updated successfully."
NOT_UPDATED = "The item has not been updated."
ADDED = "Item added successfully."
NOT_ADDED = "Failed to add item."
NAME_REQUIRED = "Fill in the name of the item"
NAME_TOO_LONG = "The name of the item is too long"


@dataclass
class FlashMessage:
    message: str
    type: str = FLASH_SUCCESS


@dataclass
class CrudState:
    """Outcome of the action handled in the current request."""

    redraw: list[str] = field(default_factory=list)
    flashes: list[FlashMessage] = field(default_factory=list)
    edit_form: dict[str, Any] | None = None
    form_error: str | None = None
    confirm_item: dict[str, Any] | None = None
    redirect_to: str | None = None
    saved: bool = False

    def redraw_control(self, *regions: str) -> None:
        for region in regions:
            if region not in self.redraw:
                self.redraw.append(region)

    def flash_message(self, message: str, type_: str = FLASH_SUCCESS) -> None:
        self.flashes.append(FlashMessage(message=message, type=type_))


def _default_show_url(item_id: int) -> str:
    return f"/items/{item_id}"


class SimpleCrud:
    FIRST_PAGE_DEFAULT = 0

    def __init__(
        self,
        name: str,
        facade: TableFacade,
        sessions: SessionStore,
        *,
        items_per_page: int | None = None,
        items_per_page_choices: tuple[int, ...] | None = None,
        direct_links_count: int | None = None,
        show_url: Callable[[int], str] = _default_show_url,
    ) -> None:
        self.name = name
        self.facade = facade
        self.sessions = sessions
        self.items_per_page_default = items_per_page or settings.crud_items_per_page
        self.items_per_page_choices = (
            items_per_page_choices or settings.crud_items_per_page_choices
        )
        self.direct_links_count = direct_links_count or settings.crud_direct_links_count
        self.show_url = show_url
        self.state = CrudState()
        self._session: SessionSection | None = None

    # Session -----------------------------------------------------------------

    @property
    def scope(self) -> str:
        config = self.facade.config
        foreign_key = "" if config.foreign_key_value is None else str(config.foreign_key_value)
        return f"{self.name}-{config.table_name}-{foreign_key}"

    @property
    def session(self) -> SessionSection:
        if self._session is None:
            self._session = self.sessions.section(self.scope)
        return self._session

    def default_sort(self) -> SortSpec:
        return SortSpec(column=self.facade.config.value_column, direction="asc")

    def current_sort(self) -> SortSpec:
        raw = self.session.get("sort")
        if not isinstance(raw, dict):
            return self.default_sort()
        try:
            return SortSpec.model_validate(raw)
        except ValidationError:
            return self.default_sort()

    def current_page(self) -> int:
        raw = self.session.get("page")
        try:
            page = int(raw) if raw is not None else self.FIRST_PAGE_DEFAULT
        except (TypeError, ValueError):
            return self.FIRST_PAGE_DEFAULT
        return max(page, self.FIRST_PAGE_DEFAULT)

    def current_items_per_page(self) -> int:
        value = coerce_positive_int(self.session.get("itemsPerPage"))
        return value or self.items_per_page_default

    # Render ------------------------------------------------------------------

    def paginator(self, page: int, items_per_page: int, item_count: int) -> Paginator:
        return build_paginator(page, items_per_page, item_count, self.direct_links_count)

    def render(self) -> dict[str, Any]:
        sort = self.current_sort()
        page = self.current_page()
        items_per_page = self.current_items_per_page()

        items = self.facade.list_items(sort.column, sort.direction, page, items_per_page)
        paginator = self.paginator(page, items_per_page, items.count())
        if paginator.page != page:
            items = self.facade.list_items(
                sort.column, sort.direction, paginator.page, items_per_page
            )
        column, direction = self.facade.resolve_sort(sort.column, sort.direction)

        return {
            "name": self.name,
            "items": items,
            "paginator": paginator,
            "sort": SortSpec(column=column, direction=direction.lower()),
            "is_parent_table": self.facade.config.parent_table_name is None,
            "id_column": self.facade.config.id_column,
            "value_column": self.facade.config.value_column,
            "foreign_key_value": self.facade.config.foreign_key_value,
            "items_per_page_choices": self.items_per_page_choices,
            "state": self.state,
        }

    # Actions -----------------------------------------------------------------

    def _get_or_404(self, action: str, item_id: Any) -> dict[str, Any]:
        item = self.facade.get_item(item_id)
        if item is None:
            observe_crud_action(self.name, action, "not_found")
            raise HTTPException(status_code=404, detail=ITEM_NOT_FOUND)
        return item

    def _form_defaults(self, item: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": item[self.facade.config.id_column],
            "name": item[self.facade.config.value_column],
        }

    def handle_edit(self, item_id: Any) -> None:
        item = self._get_or_404("edit", item_id)
        self.state.edit_form = self._form_defaults(item)
        self.state.redraw_control(REGION_EDIT_FORM)
        observe_crud_action(self.name, "edit")

    def handle_confirm(self, item_id: Any) -> None:
        item = self._get_or_404("confirm", item_id)
        self.state.confirm_item = item
        self.state.redraw_control(REGION_CONFIRM_FORM)
        observe_crud_action(self.name, "confirm")

    def handle_delete(self, item_id: Any) -> None:
        item = self._get_or_404("delete", item_id)
        outcome = "ok"
        try:
            self.facade.delete_item(item[self.facade.config.id_column])
        except ConstraintViolation:
            self.state.flash_message(DELETE_BLOCKED, FLASH_ERROR)
            outcome = "blocked"
        self.state.redraw_control(REGION_FLASH, REGION_ITEM_TABLE, REGION_PAGINATOR)
        observe_crud_action(self.name, "delete", outcome)

    def handle_add(self) -> None:
        self.state.edit_form = {"id": None, "name": ""}
        self.state.redraw_control(REGION_EDIT_FORM)
        observe_crud_action(self.name, "add")

    def handle_sort(self, column: str) -> None:
        sort = self.current_sort().toggled(column)
        self.session.set("sort", sort.model_dump())
        logger.debug("%s sort -> %s %s", self.scope, sort.column, sort.direction)
        self.state.redraw_control(REGION_ITEM_TABLE)
        observe_crud_action(self.name, "sort")

    def handle_items_per_page(self, items_per_page: Any) -> None:
        value = coerce_positive_int(items_per_page)
        if value is None:
            raise HTTPException(status_code=400, detail="Invalid number of items per page")
        # The page count changes with the page size, so start over.
        self.session.update({"itemsPerPage": value, "page": self.FIRST_PAGE_DEFAULT})
        self.state.redraw_control(REGION_ITEM_TABLE, REGION_PAGINATOR)
        observe_crud_action(self.name, "items_per_page")

    def handle_page(self, page: Any) -> None:
        try:
            value = int(page)
        except (TypeError, ValueError):
            value = -1
        if value < self.FIRST_PAGE_DEFAULT:
            raise HTTPException(status_code=400, detail="Invalid page")
        self.session.set("page", value)
        self.state.redraw_control(REGION_ITEM_TABLE, REGION_PAGINATOR)
        observe_crud_action(self.name, "page")

    def handle_show(self, item_id: Any) -> None:
        value = coerce_positive_int(item_id)
        if value is None:
            raise HTTPException(status_code=400, detail="Invalid item id")
        self.state.redirect_to = self.show_url(value)
        observe_crud_action(self.name, "show")

    def edit_form_failed(self, values: dict[str, Any], message: str = NAME_REQUIRED) -> None:
        self.state.edit_form = values
        self.state.form_error = message
        self.state.redraw_control(REGION_EDIT_FORM)
        observe_crud_action(self.name, "save", "invalid")

    def edit_form_succeeded(self, data: ItemForm) -> None:
        if data.id is not None and data.id > 0:
            updated_rows = self.facade.update_item({"id": data.id, "name": data.name})
            if updated_rows == 0:
                self.state.flash_message(NOT_UPDATED, FLASH_ERROR)
                outcome = "not_updated"
            else:
                self.state.flash_message(UPDATED, FLASH_SUCCESS)
                outcome = "updated"
        else:
            try:
                inserted = self.facade.add_item({"name": data.name})
            except InvalidArgument as exc:
                logger.warning("%s insert rejected: %s", self.scope, exc)
                inserted = None
            if inserted:
                self.state.flash_message(ADDED, FLASH_SUCCESS)
                outcome = "added"
            else:
                self.state.flash_message(NOT_ADDED, FLASH_ERROR)
                outcome = "not_added"
            self.state.redraw_control(REGION_PAGINATOR)
        self.state.saved = True
        self.state.redraw_control(REGION_FLASH, REGION_EDIT_FORM, REGION_ITEM_TABLE)
        observe_crud_action(self.name, "save", outcome)
