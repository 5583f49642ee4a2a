import argparse

from dotenv import load_dotenv

from app.db import Base, SessionLocal, engine
from app.services import web_lists as web_lists_service


def parse_args():
    parser = argparse.ArgumentParser(description="Seed demo lists and items.")
    parser.add_argument("--lists", type=int, default=3)
    parser.add_argument("--items", type=int, default=25, help="items per list")
    parser.add_argument("--create-schema", action="store_true")
    return parser.parse_args()


def main():
    load_dotenv()
    args = parse_args()
    if args.create_schema:
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        lists = web_lists_service.list_facade(db)
        if lists.list_items().count():
            print("Lists already exist, nothing to seed.")
            return
        for list_number in range(1, args.lists + 1):
            created = lists.add_item({"name": f"List {list_number}"})
            items = web_lists_service.item_facade(db, created["id"])
            for item_number in range(1, args.items + 1):
                items.add_item({"name": f"Item {list_number}.{item_number}"})
        print(f"Seeded {args.lists} list(s) with {args.items} item(s) each.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
