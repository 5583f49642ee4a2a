from app.models.lists import Item, ItemList  # noqa: F401
