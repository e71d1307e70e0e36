import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from errors import NotFound, StoreError, ValidationError


@pytest.fixture
def category(categories, category_fields):
    return categories.create(category_fields())


def test_create_links_parent_once(categories, subcategories, category, subcategory_fields):
    sub = subcategories.create(subcategory_fields(category["id"]))

    assert subcategories.get_by_id_or_name(sub["id"]) == sub
    assert sub["category"] == category["id"]
    assert sub["tax"] == 0
    assert sub["taxType"] == "percentage"
    assert categories.get_by_id_or_name(category["id"])["subCategories"] == [sub["id"]]


def test_create_keeps_initial_items(subcategories, category, subcategory_fields):
    item_id = str(ObjectId())
    sub = subcategories.create(subcategory_fields(category["id"], items=[item_id]))
    assert sub["items"] == [item_id]


def test_create_with_missing_category(subcategories, subcategory_fields):
    with pytest.raises(NotFound) as excinfo:
        subcategories.create(subcategory_fields(str(ObjectId())))
    assert excinfo.value.entity == "Category"
    assert subcategories.get_all() == []


def test_create_with_malformed_category(subcategories, subcategory_fields):
    with pytest.raises(ValidationError, match="category"):
        subcategories.create(subcategory_fields("cat-1"))


def test_get_by_category(subcategories, categories, category, category_fields, subcategory_fields):
    other = categories.create(category_fields(name="Food"))
    mine = subcategories.create(subcategory_fields(category["id"], name="Cold Drinks"))
    subcategories.create(subcategory_fields(other["id"], name="Mains"))

    assert subcategories.get_by_category(category["id"]) == [mine]
    assert subcategories.get_by_category(str(ObjectId())) == []
    assert subcategories.get_by_category("junk") == []


def test_get_by_name(subcategories, category, subcategory_fields):
    sub = subcategories.create(subcategory_fields(category["id"]))
    assert subcategories.get_by_id_or_name("Cold Drinks") == sub
    with pytest.raises(NotFound, match="Subcategory not found"):
        subcategories.get_by_id_or_name("Hot Drinks")


def test_update_reassigns_category_without_moving_links(
    subcategories, categories, category, category_fields, subcategory_fields
):
    other = categories.create(category_fields(name="Food"))
    sub = subcategories.create(subcategory_fields(category["id"]))

    updated = subcategories.update(sub["id"], subcategory_fields(other["id"], name="Iced"))

    assert updated["category"] == other["id"]
    assert updated["name"] == "Iced"
    assert updated["items"] == []
    assert categories.get_by_id_or_name(category["id"])["subCategories"] == [sub["id"]]
    assert categories.get_by_id_or_name(other["id"])["subCategories"] == []


def test_update_missing(subcategories, category, subcategory_fields):
    with pytest.raises(NotFound, match="Subcategory"):
        subcategories.update(str(ObjectId()), subcategory_fields(category["id"]))


def test_delete_leaves_parent_list(subcategories, categories, category, subcategory_fields):
    sub = subcategories.create(subcategory_fields(category["id"]))
    subcategories.delete(sub["id"])

    with pytest.raises(NotFound):
        subcategories.get_by_id_or_name(sub["id"])
    assert categories.get_by_id_or_name(category["id"])["subCategories"] == [sub["id"]]


def test_failed_insert_unlinks_parent(monkeypatch, subcategories, categories, category, subcategory_fields):
    def boom(*args, **kwargs):
        raise PyMongoError("insert failed")

    monkeypatch.setattr(subcategories.collection, "insert_one", boom)

    with pytest.raises(PyMongoError, match="insert failed"):
        subcategories.create(subcategory_fields(category["id"]))
    assert categories.get_by_id_or_name(category["id"])["subCategories"] == []


def test_failed_unlink_raises_store_error(monkeypatch, subcategories, categories, category, subcategory_fields):
    def boom(*args, **kwargs):
        raise PyMongoError("store down")

    monkeypatch.setattr(subcategories.collection, "insert_one", boom)
    monkeypatch.setattr(categories, "remove_child_subcategory", boom)

    with pytest.raises(StoreError, match="still linked") as excinfo:
        subcategories.create(subcategory_fields(category["id"]))
    assert isinstance(excinfo.value.__cause__, PyMongoError)
    assert len(categories.get_by_id_or_name(category["id"])["subCategories"]) == 1
    assert subcategories.get_all() == []


def test_category_removed_before_link(monkeypatch, subcategories, categories, subcategory_fields):
    vanished = ObjectId()
    monkeypatch.setattr(categories, "get_raw", lambda record_id: {"_id": vanished})

    with pytest.raises(NotFound, match="Category"):
        subcategories.create(subcategory_fields(str(vanished)))
    assert subcategories.get_all() == []
