"""Service helpers for the list/items web pages.

Two CRUD widgets are wired here: ``CrudList`` over the ``list`` table and
``CrudItem`` over the ``item`` table scoped to one list through ``list_id``.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import FormData

from app.schemas.crud import ItemForm, TableConfig
from app.services.session_store import SessionStore
from app.services.simple_crud import NAME_REQUIRED, NAME_TOO_LONG, SimpleCrud
from app.services.table_facade import TableFacade, coerce_positive_int

logger = logging.getLogger(__name__)

LIST_WIDGET = "list"
ITEM_WIDGET = "item"

WIDGET_NAMES = {
    LIST_WIDGET: "CrudList",
    ITEM_WIDGET: "CrudItem",
}

LIST_TABLE = TableConfig(table_name="list", id_column="id", value_column="name")
ITEM_TABLE = TableConfig(
    table_name="item",
    id_column="id",
    value_column="name",
    parent_table_name="list",
    parent_id_column="id",
    foreign_key_column="list_id",
)


def _form_str(form: FormData, key: str, default: str = "") -> str:
    value = form.get(key, default)
    return value.strip() if isinstance(value, str) else default


def list_facade(db: Session) -> TableFacade:
    return TableFacade(db, LIST_TABLE)


def item_facade(db: Session, list_id: int | None) -> TableFacade:
    return TableFacade(db, ITEM_TABLE.with_foreign_key(list_id))


def build_widget(
    widget_key: str,
    db: Session,
    sessions: SessionStore,
    list_id: Any = None,
) -> SimpleCrud:
    """Create the widget behind ``/widgets/{widget_key}``."""
    if widget_key == LIST_WIDGET:
        return SimpleCrud(WIDGET_NAMES[LIST_WIDGET], list_facade(db), sessions)
    if widget_key == ITEM_WIDGET:
        parent_id = coerce_positive_int(list_id)
        if parent_id is None:
            raise HTTPException(status_code=400, detail="Invalid list id")
        return SimpleCrud(WIDGET_NAMES[ITEM_WIDGET], item_facade(db, parent_id), sessions)
    raise HTTPException(status_code=404, detail="Unknown widget")


def widget_key_for(widget: SimpleCrud) -> str:
    return LIST_WIDGET if widget.facade.config.parent_table_name is None else ITEM_WIDGET


def action_url(widget: SimpleCrud, action: str, arg: Any = None) -> str:
    url = f"/widgets/{widget_key_for(widget)}/{action}"
    if arg is not None:
        url += f"/{arg}"
    foreign_key = widget.facade.config.foreign_key_value
    if foreign_key is not None:
        url += "?" + urlencode({"list_id": foreign_key})
    return url


def host_page_url(widget: SimpleCrud) -> str:
    foreign_key = widget.facade.config.foreign_key_value
    if foreign_key is None:
        return "/"
    return f"/items/{foreign_key}"


def widget_context(widget: SimpleCrud) -> dict[str, Any]:
    context = widget.render()
    context["key"] = widget_key_for(widget)
    context["url"] = lambda action, arg=None: action_url(widget, action, arg)
    return context


def items_page_data(db: Session, list_id: Any) -> dict[str, Any] | None:
    """Return the parent list row for the items page, or None."""
    parent = list_facade(db).get_item(list_id)
    if parent is None:
        return None
    return {"list": parent, "list_id": parent[LIST_TABLE.id_column]}


def parse_item_form(form: FormData) -> tuple[ItemForm | None, dict[str, Any], str | None]:
    """Validate the edit form; returns (data, raw values, error).

    Any ``id`` that is not a positive integer means a new row.
    """
    values = {
        "id": coerce_positive_int(_form_str(form, "id")),
        "name": _form_str(form, "name"),
    }
    try:
        return ItemForm.model_validate(values), values, None
    except ValidationError as exc:
        if any(error.get("type") == "string_too_long" for error in exc.errors()):
            return None, values, NAME_TOO_LONG
        return None, values, NAME_REQUIRED


def _toast(flash) -> dict[str, str]:
    return {
        "type": flash.type,
        "title": "Error" if flash.type == "error" else "Success",
        "message": flash.message,
    }


def htmx_trigger(widget: SimpleCrud) -> str:
    state = widget.state
    trigger: dict[str, Any] = {
        "crudRedraw": {"widget": widget.name, "regions": list(state.redraw)},
    }
    if state.saved:
        trigger["crudSaved"] = {"widget": widget.name}
    if state.flashes:
        # showToast: latest flash only; crudFlashes: every flash in order
        trigger["showToast"] = _toast(state.flashes[-1])
        trigger["crudFlashes"] = [_toast(flash) for flash in state.flashes]
    return json.dumps(trigger)
