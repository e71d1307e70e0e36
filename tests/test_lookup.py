from bson import ObjectId

from database import oid, to_str_id
from stores import FoundById, FoundByName, NoMatch, lookup_by_id_or_name


def test_lookup_by_id(db):
    res = db["category"].insert_one({"name": "Snacks"})
    result = lookup_by_id_or_name(db["category"], str(res.inserted_id))
    assert isinstance(result, FoundById)
    assert result.document["name"] == "Snacks"


def test_lookup_by_name(db):
    db["category"].insert_one({"name": "Snacks"})
    result = lookup_by_id_or_name(db["category"], "Snacks")
    assert isinstance(result, FoundByName)
    assert result.document["name"] == "Snacks"


def test_lookup_no_match(db):
    db["category"].insert_one({"name": "Snacks"})
    assert lookup_by_id_or_name(db["category"], "Desserts") == NoMatch("Desserts")
    missing = str(ObjectId())
    assert lookup_by_id_or_name(db["category"], missing) == NoMatch(missing)


def test_id_shaped_name_is_looked_up_as_id(db):
    name = str(ObjectId())
    db["category"].insert_one({"name": name})
    assert isinstance(lookup_by_id_or_name(db["category"], name), NoMatch)


def test_oid():
    _id = ObjectId()
    assert oid(str(_id)) == _id
    assert oid(_id) is _id
    assert oid("not-an-id") is None
    assert oid(None) is None


def test_to_str_id_stringifies_refs_and_lists():
    a, b, c = ObjectId(), ObjectId(), ObjectId()
    doc = to_str_id({"_id": a, "category": b, "items": [c], "name": "x"})
    assert doc == {"id": str(a), "category": str(b), "items": [str(c)], "name": "x"}
