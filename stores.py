"""
Stores for the three menu collections.

A category keeps subCategories/items id lists, a subcategory keeps an items
id list, and an item references both of its parents. The lists are
denormalized membership caches: every record's own document is the source
of truth for its existence. Updates and deletes never cascade and never
touch parent lists, so dangling references are expected after a delete.

Creating a child goes through linked_to_parents(): the child id is reserved
client-side, appended to each parent list with an atomic $addToSet, and only
then is the child inserted. Any failure after the first link pulls the links
made so far again; if that cleanup fails too, the orphan-in-list is logged
and a StoreError is raised. Nothing reconciles it later.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Sequence, Type, Union

import pydantic
from bson import ObjectId
from pydantic import BaseModel
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import oid, to_str_id
from errors import NotFound, StoreError, ValidationError, describe_errors
from schemas import (
    CategoryIn,
    CategoryUpdate,
    ItemIn,
    SubcategoryIn,
    SubcategoryUpdate,
)

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


# -----------------------------
# Id-or-name lookup
# -----------------------------
@dataclass(frozen=True)
class FoundById:
    document: Document


@dataclass(frozen=True)
class FoundByName:
    document: Document


@dataclass(frozen=True)
class NoMatch:
    key: str


LookupResult = Union[FoundById, FoundByName, NoMatch]


def lookup_by_id_or_name(collection: Collection, id_or_name: str) -> LookupResult:
    """Look a key up by _id when it is a well-formed ObjectId, else by exact name."""
    _id = oid(id_or_name)
    if _id is not None:
        doc = collection.find_one({"_id": _id})
        return FoundById(doc) if doc else NoMatch(id_or_name)
    doc = collection.find_one({"name": id_or_name})
    return FoundByName(doc) if doc else NoMatch(id_or_name)


# -----------------------------
# Validation
# -----------------------------
def validate_fields(schema: Type[BaseModel], fields: Mapping[str, Any]) -> BaseModel:
    if isinstance(fields, schema):
        return fields
    try:
        return schema.model_validate(dict(fields))
    except pydantic.ValidationError as exc:
        raise ValidationError(describe_errors(exc.errors())) from None


# -----------------------------
# Parent links
# -----------------------------
@dataclass(frozen=True)
class ParentLink:
    """One parent id list that a new child id goes into."""

    parent_id: ObjectId
    append: Callable[[ObjectId, ObjectId], None]
    remove: Callable[[ObjectId, ObjectId], None]
    label: str


def _unlink(child_id: ObjectId, links: Sequence[ParentLink], cause: BaseException) -> None:
    failed = []
    for link in reversed(links):
        try:
            link.remove(link.parent_id, child_id)
        except PyMongoError:
            logger.exception(
                "Could not unlink %s from %s %s; orphan-in-list left behind",
                child_id, link.label, link.parent_id,
            )
            failed.append(link)
        else:
            logger.warning("Unlinked %s from %s %s after failed create", child_id, link.label, link.parent_id)
    if failed:
        labels = ", ".join(f"{link.label} {link.parent_id}" for link in failed)
        raise StoreError(f"Create failed and {child_id} is still linked from {labels}") from cause


@contextmanager
def linked_to_parents(child_id: ObjectId, links: Sequence[ParentLink]) -> Iterator[None]:
    """Link child_id into every parent list for the duration of the child commit.

    The body of the with-block commits the child record. If a link or the body
    fails, links already made are removed in reverse order and the error
    propagates.
    """
    done: List[ParentLink] = []
    try:
        for link in links:
            link.append(link.parent_id, child_id)
            done.append(link)
        yield
    except Exception as exc:
        _unlink(child_id, done, exc)
        raise


# -----------------------------
# Stores
# -----------------------------
class DocumentStore:
    collection_name = ""
    entity = ""
    update_schema: Type[BaseModel] = BaseModel
    reference_fields: Sequence[str] = ()
    reference_lists: Sequence[str] = ()

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]

    def to_document(self, model: BaseModel, exclude_none: bool = False) -> Document:
        doc = model.model_dump(exclude_none=exclude_none)
        for name in self.reference_fields:
            doc[name] = ObjectId(doc[name])
        for name in self.reference_lists:
            doc[name] = [ObjectId(v) for v in doc[name]]
        return doc

    def get_all(self) -> List[Document]:
        return [to_str_id(d) for d in self.collection.find({})]

    def find_by(self, field: str, value: Any) -> List[Document]:
        _id = oid(value)
        if _id is None:
            return []
        return [to_str_id(d) for d in self.collection.find({field: _id})]

    def lookup(self, id_or_name: str) -> LookupResult:
        return lookup_by_id_or_name(self.collection, id_or_name)

    def get_by_id_or_name(self, id_or_name: str) -> Document:
        result = self.lookup(id_or_name)
        if isinstance(result, NoMatch):
            raise NotFound(self.entity)
        return to_str_id(result.document)

    def get_raw(self, record_id: Any) -> Document:
        """Return the stored document (ObjectIds intact) or raise NotFound."""
        _id = oid(record_id)
        doc = self.collection.find_one({"_id": _id}) if _id is not None else None
        if not doc:
            raise NotFound(self.entity)
        return doc

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Document:
        """Overwrite every mutable field; unspecified optional fields fall back to defaults."""
        model = validate_fields(self.update_schema, fields)
        _id = oid(record_id)
        if _id is None:
            raise NotFound(self.entity)
        doc = self.to_document(model)
        upd_op: Dict[str, Any] = {"$set": {k: v for k, v in doc.items() if v is not None}}
        cleared = {k: "" for k, v in doc.items() if v is None}
        if cleared:
            upd_op["$unset"] = cleared
        upd = self.collection.find_one_and_update({"_id": _id}, upd_op, return_document=True)
        if not upd:
            raise NotFound(self.entity)
        logger.info("Updated %s %s", self.collection_name, record_id)
        return to_str_id(upd)

    def delete(self, record_id: str) -> None:
        _id = oid(record_id)
        if _id is None:
            raise NotFound(self.entity)
        res = self.collection.delete_one({"_id": _id})
        if res.deleted_count == 0:
            raise NotFound(self.entity)
        logger.info("Deleted %s %s", self.collection_name, record_id)

    def _append_child(self, parent_id: Any, field: str, child_id: Any) -> None:
        res = self.collection.update_one({"_id": oid(parent_id)}, {"$addToSet": {field: oid(child_id)}})
        if res.matched_count == 0:
            raise NotFound(self.entity)

    def _remove_child(self, parent_id: Any, field: str, child_id: Any) -> None:
        self.collection.update_one({"_id": oid(parent_id)}, {"$pull": {field: oid(child_id)}})


class CategoryStore(DocumentStore):
    collection_name = "category"
    entity = "Category"
    update_schema = CategoryUpdate

    def create(self, fields: Mapping[str, Any]) -> Document:
        model = validate_fields(CategoryIn, fields)
        doc = self.to_document(model, exclude_none=True)
        doc["subCategories"] = []
        doc["items"] = []
        res = self.collection.insert_one(doc)
        logger.info("Created category %s (%s)", res.inserted_id, doc["name"])
        return to_str_id(doc)

    def append_child_subcategory(self, category_id: Any, subcategory_id: Any) -> None:
        self._append_child(category_id, "subCategories", subcategory_id)

    def remove_child_subcategory(self, category_id: Any, subcategory_id: Any) -> None:
        self._remove_child(category_id, "subCategories", subcategory_id)

    def append_child_item(self, category_id: Any, item_id: Any) -> None:
        self._append_child(category_id, "items", item_id)

    def remove_child_item(self, category_id: Any, item_id: Any) -> None:
        self._remove_child(category_id, "items", item_id)

    def subcategory_link(self, category_id: ObjectId) -> ParentLink:
        return ParentLink(category_id, self.append_child_subcategory, self.remove_child_subcategory, "category.subCategories")

    def item_link(self, category_id: ObjectId) -> ParentLink:
        return ParentLink(category_id, self.append_child_item, self.remove_child_item, "category.items")


class SubcategoryStore(DocumentStore):
    collection_name = "subcategory"
    entity = "Subcategory"
    update_schema = SubcategoryUpdate
    reference_fields = ("category",)
    reference_lists = ("items",)

    def __init__(self, db: Database, categories: CategoryStore):
        super().__init__(db)
        self.categories = categories

    def create(self, fields: Mapping[str, Any]) -> Document:
        model = validate_fields(SubcategoryIn, fields)
        parent = self.categories.get_raw(model.category)

        doc = self.to_document(model)
        doc["_id"] = ObjectId()
        with linked_to_parents(doc["_id"], [self.categories.subcategory_link(parent["_id"])]):
            self.collection.insert_one(doc)
        logger.info("Created subcategory %s under category %s", doc["_id"], parent["_id"])
        return to_str_id(doc)

    def get_by_category(self, category_id: str) -> List[Document]:
        return self.find_by("category", category_id)

    def append_child_item(self, subcategory_id: Any, item_id: Any) -> None:
        self._append_child(subcategory_id, "items", item_id)

    def remove_child_item(self, subcategory_id: Any, item_id: Any) -> None:
        self._remove_child(subcategory_id, "items", item_id)

    def item_link(self, subcategory_id: ObjectId) -> ParentLink:
        return ParentLink(subcategory_id, self.append_child_item, self.remove_child_item, "subcategory.items")


class ItemStore(DocumentStore):
    collection_name = "item"
    entity = "Item"
    update_schema = ItemIn
    reference_fields = ("category", "subcategory")

    def __init__(self, db: Database, categories: CategoryStore, subcategories: SubcategoryStore):
        super().__init__(db)
        self.categories = categories
        self.subcategories = subcategories

    def create(self, fields: Mapping[str, Any]) -> Document:
        model = validate_fields(ItemIn, fields)
        category = self.categories.get_raw(model.category)
        subcategory = self.subcategories.get_raw(model.subcategory)
        if subcategory.get("category") != category["_id"]:
            logger.warning(
                "Item %r: subcategory %s belongs to category %s, not %s",
                model.name, subcategory["_id"], subcategory.get("category"), category["_id"],
            )

        doc = self.to_document(model)
        doc["_id"] = ObjectId()
        links = [
            self.categories.item_link(category["_id"]),
            self.subcategories.item_link(subcategory["_id"]),
        ]
        with linked_to_parents(doc["_id"], links):
            self.collection.insert_one(doc)
        logger.info("Created item %s under category %s / subcategory %s", doc["_id"], category["_id"], subcategory["_id"])
        return to_str_id(doc)

    def search(self, name: str) -> Document:
        doc = self.collection.find_one({"name": name})
        if not doc:
            raise NotFound(self.entity)
        return to_str_id(doc)

    def get_by_category(self, category_id: str) -> List[Document]:
        return self.find_by("category", category_id)

    def get_by_subcategory(self, subcategory_id: str) -> List[Document]:
        return self.find_by("subcategory", subcategory_id)
