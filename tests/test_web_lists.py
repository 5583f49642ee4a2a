import json

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from sqlalchemy import select

from app.db import get_db
from app.main import app
from app.models.lists import Item, ItemList
from app.services import simple_crud as simple_crud_service
from app.services import web_lists as web_lists_service

HTMX = {"HX-Request": "true"}


@pytest.fixture()
def client(db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.pop(get_db, None)


def _trigger(response):
    return json.loads(response.headers["HX-Trigger"])


def test_lists_page_renders_widget_and_issues_session_cookie(client, item_list):
    resp = client.get("/")
    assert resp.status_code == 200
    assert 'id="crud-CrudList"' in resp.text
    assert "Groceries" in resp.text
    assert f"/widgets/list/show/{item_list.id}" in resp.text
    assert "crud_session" in resp.cookies


def test_items_page_renders_scoped_widget(client, item_list, make_items):
    make_items(item_list, ["milk", "bread"])
    resp = client.get(f"/items/{item_list.id}")
    assert resp.status_code == 200
    assert "<h1>Groceries</h1>" in resp.text
    assert 'id="crud-CrudItem"' in resp.text
    assert "milk" in resp.text and "bread" in resp.text
    assert f"?list_id={item_list.id}" in resp.text
    assert "/widgets/item/show/" not in resp.text


def test_items_page_for_missing_list_is_not_found(client):
    resp = client.get("/items/999", headers={"accept": "text/html"})
    assert resp.status_code == 404
    assert "List does not exist" in resp.text


def test_htmx_edit_returns_fragment_with_trigger(client, item_list):
    resp = client.get(f"/widgets/list/edit/{item_list.id}", headers=HTMX)
    assert resp.status_code == 200
    assert "<html" not in resp.text
    assert 'value="Groceries"' in resp.text
    trigger = _trigger(resp)
    assert trigger["crudRedraw"] == {"widget": "CrudList", "regions": ["edit-form"]}


def test_htmx_edit_of_missing_item_is_json_not_found(client):
    resp = client.get("/widgets/list/edit/999", headers=HTMX)
    assert resp.status_code == 404
    assert resp.json()["message"] == simple_crud_service.ITEM_NOT_FOUND


def test_delete_blocked_by_items_shows_error(client, item_list, make_items):
    make_items(item_list, ["milk"])
    resp = client.post(f"/widgets/list/delete/{item_list.id}", headers=HTMX)
    assert resp.status_code == 200
    assert simple_crud_service.DELETE_BLOCKED in resp.text
    toast = _trigger(resp)["showToast"]
    assert toast["type"] == "error"
    assert toast["message"] == simple_crud_service.DELETE_BLOCKED


def test_delete_removes_row(client, db_session):
    empty = ItemList(name="Empty")
    db_session.add(empty)
    db_session.commit()
    empty_id = empty.id
    resp = client.post(f"/widgets/list/delete/{empty_id}", headers=HTMX)
    assert resp.status_code == 200
    assert db_session.scalar(select(ItemList.id).where(ItemList.id == empty_id)) is None


def test_save_adds_item_to_list(client, db_session, item_list):
    resp = client.post(
        f"/widgets/item/save?list_id={item_list.id}",
        data={"id": "", "name": "  Eggs "},
        headers=HTMX,
    )
    assert resp.status_code == 200
    assert simple_crud_service.ADDED in resp.text
    trigger = _trigger(resp)
    assert trigger["crudSaved"] == {"widget": "CrudItem"}
    items = db_session.query(Item).filter(Item.list_id == item_list.id).all()
    assert [item.name for item in items] == ["Eggs"]


def test_save_updates_list(client, db_session, item_list):
    resp = client.post(
        "/widgets/list/save",
        data={"id": str(item_list.id), "name": "Food"},
        headers=HTMX,
    )
    assert resp.status_code == 200
    assert simple_crud_service.UPDATED in resp.text
    db_session.expire_all()
    assert db_session.get(ItemList, item_list.id).name == "Food"


def test_save_without_name_redisplays_form(client):
    resp = client.post("/widgets/list/save", data={"id": "", "name": "   "}, headers=HTMX)
    assert resp.status_code == 200
    assert simple_crud_service.NAME_REQUIRED in resp.text
    assert "crudSaved" not in _trigger(resp)


def test_show_redirects_htmx_and_plain_requests(client, item_list):
    resp = client.get(f"/widgets/list/show/{item_list.id}", headers=HTMX)
    assert resp.status_code == 200
    assert resp.headers["HX-Redirect"] == f"/items/{item_list.id}"

    resp = client.get(f"/widgets/list/show/{item_list.id}", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == f"/items/{item_list.id}"


def test_sort_is_remembered_between_requests(client, db_session):
    db_session.add_all([ItemList(name="alpha"), ItemList(name="beta")])
    db_session.commit()
    client.get("/widgets/list/sort/name", headers=HTMX)
    resp = client.get("/")
    assert resp.text.index("beta") < resp.text.index("alpha")


def test_paging_links_and_plain_request_renders_host_page(client, db_session):
    db_session.add_all([ItemList(name=f"list {n:02d}") for n in range(25)])
    db_session.commit()
    resp = client.get("/widgets/list/page/2")
    assert resp.status_code == 200
    assert "<h1>Lists</h1>" in resp.text
    assert "list 24" in resp.text
    assert "list 00" not in resp.text
    assert "25 item(s)" in resp.text


def test_item_widget_requires_list_id(client):
    resp = client.get("/widgets/item/add", headers=HTMX)
    assert resp.status_code == 400


def test_unknown_widget_is_not_found(client):
    resp = client.get("/widgets/nope/add", headers=HTMX)
    assert resp.status_code == 404


def test_invalid_items_per_page_is_bad_request(client):
    resp = client.get("/widgets/list/per-page/0", headers=HTMX)
    assert resp.status_code == 400


def test_metrics_count_widget_actions(client, item_list):
    labels = {"widget": "CrudList", "action": "edit", "outcome": "ok"}
    before = REGISTRY.get_sample_value("crud_actions_total", labels) or 0.0
    client.get(f"/widgets/list/edit/{item_list.id}", headers=HTMX)
    assert REGISTRY.get_sample_value("crud_actions_total", labels) == before + 1
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "crud_actions_total{" in resp.text


@pytest.mark.parametrize("raw_id", ["abc", "0", "-3", "1.5"])
def test_save_with_non_positive_or_non_numeric_id_adds_a_row(client, db_session, raw_id):
    resp = client.post("/widgets/list/save", data={"id": raw_id, "name": "Books"}, headers=HTMX)
    assert resp.status_code == 200
    assert simple_crud_service.ADDED in resp.text
    assert _trigger(resp)["crudSaved"] == {"widget": "CrudList"}
    names = db_session.scalars(select(ItemList.name)).all()
    assert names == ["Books"]


def test_save_with_overlong_name_reports_length(client, db_session):
    resp = client.post("/widgets/list/save", data={"id": "", "name": "x" * 300}, headers=HTMX)
    assert resp.status_code == 200
    assert simple_crud_service.NAME_TOO_LONG in resp.text
    assert simple_crud_service.NAME_REQUIRED not in resp.text
    assert db_session.scalar(select(ItemList.id).limit(1)) is None


def test_trigger_lists_every_flash_and_toasts_the_latest(db_session, sessions):
    widget = web_lists_service.build_widget("list", db_session, sessions)
    widget.state.flash_message(simple_crud_service.UPDATED)
    widget.state.flash_message(simple_crud_service.DELETE_BLOCKED, simple_crud_service.FLASH_ERROR)
    trigger = json.loads(web_lists_service.htmx_trigger(widget))
    assert [flash["message"] for flash in trigger["crudFlashes"]] == [
        simple_crud_service.UPDATED,
        simple_crud_service.DELETE_BLOCKED,
    ]
    assert trigger["showToast"]["message"] == simple_crud_service.DELETE_BLOCKED
    assert trigger["showToast"]["title"] == "Error"
