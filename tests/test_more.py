import json

import pytest
from rich.console import Console

from embedded_json_db_engine import (
    AutoIncrementKeys,
    CallerSuppliedKeys,
    CustomValidationError,
    Database,
    ImmutableKeyError,
    MissingRequiredFieldError,
    RandomKeys,
    SchemaError,
    TypeMismatchError,
    ValidationError,
)


def make_schema():
    return {
        "name":  {"type": "str", "required": True},
        "age":   {"type": "int", "validate": lambda v: v >= 0},
        "score": {"type": "number"},
        "tags":  {"type": "list", "default": []},
        "email": {"type": "string", "mandatory": True, "validate": lambda v: "@" in v},
    }


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "people.json"), schema=make_schema())


def on_disk(db):
    with open(db.path, encoding="utf-8") as f:
        return json.load(f)


def test_insert_applies_defaults_and_validates(db):
    key = db.insert({"name": "Ann", "email": "ann@x", "age": 3, "score": 2.5})
    doc = db.get(key)
    assert doc["tags"] == []
    assert doc["_id"] == key


def test_missing_required_field(db):
    with pytest.raises(MissingRequiredFieldError) as ei:
        db.insert({"name": "Ann"})
    assert ei.value.field == "email"
    assert db.get_all() == {}
    assert on_disk(db) == {}


def test_required_checked_before_types(db):
    # "name" has the wrong type but the missing "email" is reported first
    with pytest.raises(MissingRequiredFieldError):
        db.insert({"name": 5})


def test_type_mismatch(db):
    with pytest.raises(TypeMismatchError) as ei:
        db.insert({"name": "Ann", "email": "a@b", "age": "3"})
    assert ei.value.field == "age"
    # bool is not an int, int is a number
    with pytest.raises(TypeMismatchError):
        db.insert({"name": "Ann", "email": "a@b", "age": True})
    db.insert({"name": "Ann", "email": "a@b", "score": 3})
    assert len(db) == 1


def test_custom_predicate(db):
    with pytest.raises(CustomValidationError) as ei:
        db.insert({"name": "Ann", "email": "nope"})
    assert ei.value.field == "email"
    assert isinstance(ei.value, ValidationError)
    assert isinstance(ei.value, ValueError)


def test_predicate_exception_is_reported_as_validation_failure(tmp_path):
    def explode(v):
        raise RuntimeError("boom")

    db = Database(str(tmp_path / "x.json"), schema={"v": {"validate": explode}})
    with pytest.raises(CustomValidationError) as ei:
        db.insert({"v": 1})
    assert isinstance(ei.value.__cause__, RuntimeError)


def test_unknown_fields_pass(db):
    key = db.insert({"name": "Ann", "email": "a@b", "anything": {"goes": [1]}})
    assert db.get(key)["anything"] == {"goes": [1]}


def test_update_validates_partial_without_required_check(db):
    db.insert({"_id": "1", "name": "Ann", "email": "a@b", "age": 1})

    assert db.update({"_id": "1"}, {"age": 2}) == 1
    with pytest.raises(TypeMismatchError):
        db.update({"_id": "1"}, {"age": "old"})
    with pytest.raises(CustomValidationError):
        db.update({"_id": "1"}, {"age": -1})
    assert db.get("1")["age"] == 2
    assert on_disk(db)["1"]["age"] == 2


def test_update_cannot_change_key(db):
    db.insert({"_id": "1", "name": "Ann", "email": "a@b"})
    with pytest.raises(ImmutableKeyError):
        db.update({"_id": "1"}, {"_id": "2"})
    assert list(db.get_all()) == ["1"]


def test_failed_update_touches_no_document(db):
    db.insert({"_id": "1", "name": "Ann", "email": "a@b"})
    db.insert({"_id": "2", "name": "Bob", "email": "b@b"})
    with pytest.raises(TypeMismatchError):
        db.update({}, {"name": "X", "score": "high"})
    assert [d["name"] for d in db.get_all().values()] == ["Ann", "Bob"]


def test_query_values_are_type_checked(db):
    db.insert({"_id": "1", "name": "Ann", "email": "a@b", "age": 1})
    with pytest.raises(TypeMismatchError):
        db.find({"age": "1"})
    with pytest.raises(TypeMismatchError):
        db.find_one({"age": [1, "2"]})
    assert db.find({"age": [1, 2]}) == ["1"]


def test_non_serializable_values_rejected(tmp_path):
    db = Database(str(tmp_path / "x.json"))
    with pytest.raises(TypeMismatchError) as ei:
        db.insert({"_id": "1", "when": object()})
    assert ei.value.field == "when"
    assert db.get_all() == {}


@pytest.mark.parametrize("value", [float("nan"), float("inf"), -float("inf"), [1, float("nan")]])
def test_non_finite_floats_rejected(tmp_path, value):
    db = Database(str(tmp_path / "x.json"))
    db.insert({"_id": "1", "v": 1.5})
    with pytest.raises(TypeMismatchError) as ei:
        db.insert({"_id": "2", "v": value})
    assert ei.value.field == "v"
    with pytest.raises(TypeMismatchError):
        db.update({"_id": "1"}, {"v": value})

    assert db.get_all() == {"1": {"_id": "1", "v": 1.5}}
    # The file stays strict JSON
    with open(db.path, encoding="utf-8") as f:
        assert json.load(f, parse_constant=lambda c: pytest.fail(f"non-JSON constant {c}")) == db.get_all()


@pytest.mark.parametrize("doc", [
    {"_id": "1", 5: "x"},
    {"_id": "1", "nested": {1: 2}},
    {"_id": "1", "items": [{"ok": 1}, {None: 2}]},
])
def test_non_string_mapping_keys_rejected(tmp_path, doc):
    db = Database(str(tmp_path / "x.json"))
    with pytest.raises(TypeMismatchError):
        db.insert(doc)
    assert db.get_all() == {}


def test_non_string_keys_rejected_in_updates(tmp_path):
    db_path = tmp_path / "x.json"
    db = Database(str(db_path))
    db.insert({"_id": "1", "nested": {"a": 1}})
    with pytest.raises(TypeMismatchError):
        db.update({"_id": "1"}, {"nested": {1: "b"}})
    with pytest.raises(TypeMismatchError):
        db.update({"_id": "1"}, {7: "x"})

    # What is in memory is exactly what a fresh instance reads back
    assert db.get_all() == Database(str(db_path)).get_all() == {"1": {"_id": "1", "nested": {"a": 1}}}


def test_bad_key_type_rejected(tmp_path):
    db = Database(str(tmp_path / "x.json"))
    with pytest.raises(TypeMismatchError):
        db.insert({"_id": 7})
    with pytest.raises(TypeMismatchError):
        db.insert({"_id": ""})


@pytest.mark.parametrize("schema", [
    {"a": {"type": "uuid"}},
    {"a": "str"},
    {"a": {"type": "str", "nullable": True}},
    {"a": {"validate": 42}},
    {"a": {"type": "int", "default": "zero"}},
    ["a"],
])
def test_invalid_schemas(tmp_path, schema):
    with pytest.raises(SchemaError):
        Database(str(tmp_path / "x.json"), schema=schema)


def test_random_keys_written_into_document(tmp_path):
    db = Database(str(tmp_path / "x.json"), key_strategy=RandomKeys(4))
    key = db.insert({"v": 1})
    assert len(key) == 8
    assert db.find_one({"_id": key}) == {"v": 1, "_id": key}
    assert on_disk(db)[key]["_id"] == key


def test_auto_increment_id(tmp_path):
    db = Database(str(tmp_path / "x.json"))
    assert db.get_auto_increment_id() == 1
    db.insert({"_id": "abc"})
    db.insert({"_id": "7"})
    db.insert({"_id": "12x"})
    assert db.get_auto_increment_id() == 8
    # Advisory only: nothing was inserted
    assert len(db) == 3


def test_auto_increment_strategy(tmp_path):
    db = Database(str(tmp_path / "x.json"), key_strategy=AutoIncrementKeys())
    assert db.insert({"v": "a"}) == "1"
    assert db.insert({"v": "b"}) == "2"
    assert db.insert({"_id": "10", "v": "c"}) == "10"
    assert db.insert({"v": "d"}) == "11"


def test_caller_supplied_strategy_and_per_insert_override(tmp_path):
    db = Database(str(tmp_path / "x.json"), key_strategy=CallerSuppliedKeys())
    with pytest.raises(MissingRequiredFieldError):
        db.insert({"v": 1})
    assert db.insert({"_id": "k", "v": 1}) == "k"
    assert db.insert({"v": 2}, key_strategy=AutoIncrementKeys()) == "1"


def test_visualize(tmp_path):
    db = Database(str(tmp_path / "x.json"))
    db.insert({"_id": "1", "name": "Ann", "tags": ["[red]", "b"]})
    db.insert({"_id": "2", "city": "Wien"})

    console = Console(record=True, width=120, color_system=None)
    db.visualize(console=console)
    out = console.export_text()
    for text in ("_id", "name", "tags", "city", "Ann", "Wien", '["[red]","b"]', "x.json"):
        assert text in out
