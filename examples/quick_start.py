#!/usr/bin/env python3
# Example usage of embedded_json_db_engine

import logging

from embedded_json_db_engine import AutoIncrementKeys, Database

# Minimal demo schema: a user with name (str), age (int) and a category index
SCHEMA = {
    "name": {"type": "str", "required": True},
    "age": {"type": "int", "default": 0, "validate": lambda v: v >= 0},
    "category": {"type": "str", "index": True},
}


def progress_printer(evt):
    print(f"[progress] {evt['phase']} {evt['pct']}% {evt.get('msg', '')}".rstrip())


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    # Whole store lives in demo.json; created as {} if missing
    db = Database("demo.json", schema=SCHEMA, key_strategy=AutoIncrementKeys(), on_progress=progress_printer)

    alice = db.insert({"name": "Alice", "age": 33, "category": "A"})
    db.insert({"name": "Bob", "category": "B"})
    db.insert({"_id": "carol", "name": "Carol", "age": 41, "category": "A"})
    print("Inserted:", alice)

    # Indexed lookup, then a mixed indexed + scanned query
    print("Category A:", db.find({"category": "A"}))
    print("Category A, age 41:", db.find({"category": "A", "age": 41}, return_keys=False))

    # Update moves documents between index buckets
    modified = db.update({"category": "A"}, {"category": "C"})
    print("Updated records:", modified)
    print("Category C:", db.find({"category": "C"}))

    # Ad-hoc index on a field without a schema entry
    db.create_index("age")
    print("Age 0:", db.find_one({"age": 0}))

    removed = db.remove({"category": "B"})
    print("Removed:", removed)
    print("Next numeric id:", db.get_auto_increment_id())

    db.visualize()


if __name__ == "__main__":
    main()
