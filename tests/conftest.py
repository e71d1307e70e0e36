"""Shared fixtures: a throwaway mongomock database per test, stores bound to it
and a TestClient whose database dependency points at the same handle."""
import uuid

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_database
from main import app
from stores import CategoryStore, ItemStore, SubcategoryStore


@pytest.fixture
def db():
    client = mongomock.MongoClient()
    return client[f"menu_test_{uuid.uuid4().hex}"]


@pytest.fixture
def categories(db):
    return CategoryStore(db)


@pytest.fixture
def subcategories(db, categories):
    return SubcategoryStore(db, categories)


@pytest.fixture
def items(db, categories, subcategories):
    return ItemStore(db, categories, subcategories)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_database] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def category_fields():
    def make(**overrides):
        fields = {
            "name": "Beverages",
            "image": "https://img.example.com/beverages.png",
            "description": "Hot and cold drinks",
        }
        fields.update(overrides)
        return fields

    return make


@pytest.fixture
def subcategory_fields():
    def make(category_id, **overrides):
        fields = {
            "name": "Cold Drinks",
            "image": "https://img.example.com/cold.png",
            "description": "Chilled",
            "category": category_id,
        }
        fields.update(overrides)
        return fields

    return make


@pytest.fixture
def item_fields():
    def make(category_id, subcategory_id, **overrides):
        fields = {
            "name": "Cola",
            "image": "https://img.example.com/cola.png",
            "description": "330ml can",
            "baseAmount": 50,
            "totalAmount": 50,
            "category": category_id,
            "subcategory": subcategory_id,
        }
        fields.update(overrides)
        return fields

    return make
