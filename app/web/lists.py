"""List/items pages and the CRUD widget action endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from app.db import get_db
from app.services import web_lists as web_lists_service
from app.services.session_store import CrudSessionStore
from app.services.simple_crud import SimpleCrud
from app.web.request_parsing import parse_form_data_sync
from app.web.session import get_crud_sessions

templates = Jinja2Templates(directory="templates")
router = APIRouter(tags=["web-lists"])


def _is_htmx(request: Request) -> bool:
    return request.headers.get("HX-Request", "").lower() == "true"


def _items_page_or_404(db: Session, list_id) -> dict:
    page_data = web_lists_service.items_page_data(db, list_id)
    if not page_data:
        raise HTTPException(status_code=404, detail="List does not exist")
    return page_data


def _render_host_page(request: Request, db: Session, widget: SimpleCrud) -> HTMLResponse:
    context = {"widget": web_lists_service.widget_context(widget)}
    if widget.facade.config.foreign_key_value is None:
        return templates.TemplateResponse(request, "lists/index.html", context)
    context.update(_items_page_or_404(db, widget.facade.config.foreign_key_value))
    return templates.TemplateResponse(request, "lists/items.html", context)


def _widget_response(request: Request, db: Session, widget: SimpleCrud) -> Response:
    if widget.state.redirect_to:
        if _is_htmx(request):
            return Response(status_code=200, headers={"HX-Redirect": widget.state.redirect_to})
        return RedirectResponse(widget.state.redirect_to, status_code=303)
    if not _is_htmx(request):
        return _render_host_page(request, db, widget)
    response = templates.TemplateResponse(
        request,
        "crud/widget.html",
        {"widget": web_lists_service.widget_context(widget)},
    )
    response.headers["HX-Trigger"] = web_lists_service.htmx_trigger(widget)
    return response


def _widget(
    widget_key: str,
    list_id: int | None,
    db: Session,
    sessions: CrudSessionStore,
) -> SimpleCrud:
    return web_lists_service.build_widget(widget_key, db, sessions, list_id)


@router.get("/", response_class=HTMLResponse)
def lists_page(
    request: Request,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> HTMLResponse:
    """Lists overview."""
    widget = _widget(web_lists_service.LIST_WIDGET, None, db, sessions)
    return _render_host_page(request, db, widget)


@router.get("/items/{list_id}", response_class=HTMLResponse)
def items_page(
    request: Request,
    list_id: int,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> HTMLResponse:
    """Items of one list."""
    _items_page_or_404(db, list_id)
    widget = _widget(web_lists_service.ITEM_WIDGET, list_id, db, sessions)
    return _render_host_page(request, db, widget)


@router.get("/widgets/{widget_key}/edit/{item_id}")
def widget_edit(
    request: Request,
    widget_key: str,
    item_id: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_edit(item_id)
    return _widget_response(request, db, widget)


@router.get("/widgets/{widget_key}/confirm/{item_id}")
def widget_confirm(
    request: Request,
    widget_key: str,
    item_id: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_confirm(item_id)
    return _widget_response(request, db, widget)


@router.post("/widgets/{widget_key}/delete/{item_id}")
def widget_delete(
    request: Request,
    widget_key: str,
    item_id: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_delete(item_id)
    return _widget_response(request, db, widget)


@router.get("/widgets/{widget_key}/add")
def widget_add(
    request: Request,
    widget_key: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_add()
    return _widget_response(request, db, widget)


@router.get("/widgets/{widget_key}/sort/{column}")
def widget_sort(
    request: Request,
    widget_key: str,
    column: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_sort(column)
    return _widget_response(request, db, widget)


@router.get("/widgets/{widget_key}/per-page/{items_per_page}")
def widget_items_per_page(
    request: Request,
    widget_key: str,
    items_per_page: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_items_per_page(items_per_page)
    return _widget_response(request, db, widget)


@router.get("/widgets/{widget_key}/page/{page}")
def widget_page(
    request: Request,
    widget_key: str,
    page: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_page(page)
    return _widget_response(request, db, widget)


@router.get("/widgets/{widget_key}/show/{item_id}")
def widget_show(
    request: Request,
    widget_key: str,
    item_id: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    widget.handle_show(item_id)
    return _widget_response(request, db, widget)


@router.post("/widgets/{widget_key}/save")
def widget_save(
    request: Request,
    widget_key: str,
    list_id: int | None = None,
    db: Session = Depends(get_db),
    sessions: CrudSessionStore = Depends(get_crud_sessions),
) -> Response:
    widget = _widget(widget_key, list_id, db, sessions)
    form = parse_form_data_sync(request)
    data, values, error = web_lists_service.parse_item_form(form)
    if error:
        widget.edit_form_failed(values, error)
    else:
        widget.edit_form_succeeded(data)
    return _widget_response(request, db, widget)
