import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import get_settings
from database import get_database
from errors import MenuError, describe_errors
from schemas import CategoryIn, CategoryUpdate, ItemIn, SubcategoryIn, SubcategoryUpdate
from stores import CategoryStore, ItemStore, SubcategoryStore

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("menu_api")


# -----------------------------
# Pydantic Schemas (API layer)
# -----------------------------
class CategoryOut(BaseModel):
    id: str
    name: str
    image: str
    description: str
    taxApplicability: bool
    tax: Optional[float] = None
    taxType: str
    subCategories: List[str]
    items: List[str]


class SubcategoryOut(BaseModel):
    id: str
    name: str
    image: str
    description: str
    taxApplicability: bool
    tax: float
    taxType: str
    items: List[str]
    category: str


class ItemOut(BaseModel):
    id: str
    name: str
    image: str
    description: str
    taxApplicability: bool
    tax: float
    baseAmount: float
    discount: float
    totalAmount: float
    category: str
    subcategory: str


class MessageOut(BaseModel):
    message: str


# -----------------------------
# FastAPI App
# -----------------------------
app = FastAPI(title="Menu Management API - MongoDB")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MenuError)
async def menu_error_handler(request: Request, exc: MenuError):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": describe_errors(exc.errors())})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# -----------------------------
# Store dependencies
# -----------------------------
def get_category_store(db: Database = Depends(get_database)) -> CategoryStore:
    return CategoryStore(db)


def get_subcategory_store(
    db: Database = Depends(get_database),
    categories: CategoryStore = Depends(get_category_store),
) -> SubcategoryStore:
    return SubcategoryStore(db, categories)


def get_item_store(
    db: Database = Depends(get_database),
    categories: CategoryStore = Depends(get_category_store),
    subcategories: SubcategoryStore = Depends(get_subcategory_store),
) -> ItemStore:
    return ItemStore(db, categories, subcategories)


@app.get("/")
def root():
    return {"message": "Menu Management API running", "driver": "mongodb", "db": settings.database_name}


@app.get("/health")
def health(db: Database = Depends(get_database)):
    db.command("ping")
    return {"status": "ok"}


# -----------------------------
# Categories
# -----------------------------
@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryIn, store: CategoryStore = Depends(get_category_store)):
    return CategoryOut(**store.create(payload))


@app.get("/api/categories", response_model=List[CategoryOut])
def list_categories(store: CategoryStore = Depends(get_category_store)):
    return [CategoryOut(**d) for d in store.get_all()]


@app.get("/api/categories/{idOrName}", response_model=CategoryOut)
def get_category(idOrName: str, store: CategoryStore = Depends(get_category_store)):
    return CategoryOut(**store.get_by_id_or_name(idOrName))


@app.put("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(category_id: str, payload: CategoryUpdate, store: CategoryStore = Depends(get_category_store)):
    return CategoryOut(**store.update(category_id, payload))


@app.delete("/api/categories/{category_id}", response_model=MessageOut)
def delete_category(category_id: str, store: CategoryStore = Depends(get_category_store)):
    store.delete(category_id)
    return MessageOut(message="Category deleted successfully")


# -----------------------------
# Subcategories
# -----------------------------
@app.post("/api/subcategories", response_model=SubcategoryOut, status_code=201)
def create_subcategory(payload: SubcategoryIn, store: SubcategoryStore = Depends(get_subcategory_store)):
    return SubcategoryOut(**store.create(payload))


@app.get("/api/subcategories", response_model=List[SubcategoryOut])
def list_subcategories(store: SubcategoryStore = Depends(get_subcategory_store)):
    return [SubcategoryOut(**d) for d in store.get_all()]


@app.get("/api/categories/{categoryId}/subcategories", response_model=List[SubcategoryOut])
def list_subcategories_by_category(categoryId: str, store: SubcategoryStore = Depends(get_subcategory_store)):
    return [SubcategoryOut(**d) for d in store.get_by_category(categoryId)]


@app.get("/api/subcategories/{idOrName}", response_model=SubcategoryOut)
def get_subcategory(idOrName: str, store: SubcategoryStore = Depends(get_subcategory_store)):
    return SubcategoryOut(**store.get_by_id_or_name(idOrName))


@app.put("/api/subcategories/{subcategory_id}", response_model=SubcategoryOut)
def update_subcategory(
    subcategory_id: str,
    payload: SubcategoryUpdate,
    store: SubcategoryStore = Depends(get_subcategory_store),
):
    return SubcategoryOut(**store.update(subcategory_id, payload))


@app.delete("/api/subcategories/{subcategory_id}", response_model=MessageOut)
def delete_subcategory(subcategory_id: str, store: SubcategoryStore = Depends(get_subcategory_store)):
    store.delete(subcategory_id)
    return MessageOut(message="Subcategory deleted successfully")


# -----------------------------
# Items
# -----------------------------
@app.post("/api/items", response_model=ItemOut, status_code=201)
def create_item(payload: ItemIn, store: ItemStore = Depends(get_item_store)):
    return ItemOut(**store.create(payload))


@app.get("/api/items", response_model=List[ItemOut])
def list_items(store: ItemStore = Depends(get_item_store)):
    return [ItemOut(**d) for d in store.get_all()]


@app.get("/api/categories/{categoryId}/items", response_model=List[ItemOut])
def list_items_by_category(categoryId: str, store: ItemStore = Depends(get_item_store)):
    return [ItemOut(**d) for d in store.get_by_category(categoryId)]


@app.get("/api/subcategory/{subcategoryId}/items", response_model=List[ItemOut])
def list_items_by_subcategory(subcategoryId: str, store: ItemStore = Depends(get_item_store)):
    return [ItemOut(**d) for d in store.get_by_subcategory(subcategoryId)]


@app.get("/api/items/{idOrName}", response_model=ItemOut)
def get_item(idOrName: str, store: ItemStore = Depends(get_item_store)):
    return ItemOut(**store.get_by_id_or_name(idOrName))


@app.get("/api/search", response_model=ItemOut)
def search_item(name: str = Query(..., description="Exact item name"), store: ItemStore = Depends(get_item_store)):
    return ItemOut(**store.search(name))


@app.put("/api/items/{item_id}", response_model=ItemOut)
def update_item(item_id: str, payload: ItemIn, store: ItemStore = Depends(get_item_store)):
    return ItemOut(**store.update(item_id, payload))


@app.delete("/api/items/{item_id}", response_model=MessageOut)
def delete_item(item_id: str, store: ItemStore = Depends(get_item_store)):
    store.delete(item_id)
    return MessageOut(message="Item deleted successfully")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
