from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from coffee_pos.context import AppContext, get_context
from coffee_pos.db.database import get_db
from coffee_pos.schemas.product import ProductCreate, ProductUpdate, ProductResponse, RecipeUpdate, RecipeResponse
from coffee_pos.auth.dependencies import get_current_user, require_manager_or_admin
from coffee_pos.services.catalog_service import CatalogService

router = APIRouter(
    prefix="/products",
    tags=["Products"]
)


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context)
) -> CatalogService:
    """Dependency to get catalog service"""
    return CatalogService(db, audit=context.audit)


@router.get(
    "",
    response_model=List[ProductResponse],
    summary="List products",
    description="""
    All products, grouped by category then name.

    **Filtering:**
    - `category`: only products in this category
    - `available`: only products that can currently be ordered
    """,
    responses={
        200: {"description": "List of products"},
        401: {"description": "Authentication required"}
    }
)
async def list_products(
    category: Optional[str] = Query(None, description="Filter by category"),
    available: bool = Query(False, description="Only available products"),
    current_user: dict = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.list_products(category=category, available_only=available)


@router.get(
    "/categories",
    response_model=List[str],
    summary="List product categories",
    responses={200: {"description": "Distinct category names"}}
)
async def list_categories(
    current_user: dict = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.list_categories()


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
    description="""
    Create a product, optionally together with its recipe.

    **Requirements:**
    - Account Type: MANAGER or ADMIN

    **Recipe:**
    Each ingredient references an inventory item and the quantity used per
    unit sold. Products without a recipe are sold without touching inventory.
    """,
    responses={
        201: {"description": "Product created"},
        403: {"description": "Requires MANAGER or ADMIN"},
        404: {"description": "Recipe references an unknown inventory item"}
    }
)
async def create_product(
    product_data: ProductCreate,
    current_user: dict = Depends(require_manager_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.create_product(product_data, actor_id=current_user["user_id"])


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    responses={
        200: {"description": "Product details"},
        404: {"description": "Product not found"}
    }
)
async def get_product(
    product_id: int,
    current_user: dict = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.get_product(product_id)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="""
    Partial update; only fields present in the body change. A `recipe` field
    replaces the whole recipe. Price changes apply to future orders only.

    **Requirements:**
    - Account Type: MANAGER or ADMIN
    """,
    responses={
        200: {"description": "Updated product"},
        403: {"description": "Requires MANAGER or ADMIN"},
        404: {"description": "Product or inventory item not found"}
    }
)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    current_user: dict = Depends(require_manager_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.update_product(product_id, product_data, actor_id=current_user["user_id"])


@router.get(
    "/{product_id}/recipe",
    response_model=RecipeResponse,
    summary="Get product recipe",
    responses={
        200: {"description": "Recipe with ingredient names"},
        404: {"description": "Product or recipe not found"}
    }
)
async def get_recipe(
    product_id: int,
    current_user: dict = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    await catalog.get_product(product_id)
    recipe = await catalog.get_recipe(product_id)
    if recipe is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recipe not found for this product."
        )
    return recipe


@router.put(
    "/{product_id}/recipe",
    response_model=Optional[RecipeResponse],
    summary="Replace product recipe",
    description="""
    Replace the recipe. An empty ingredient list removes it, after which the
    product is sold without consuming inventory.

    **Requirements:**
    - Account Type: MANAGER or ADMIN
    """,
    responses={
        200: {"description": "New recipe (null when cleared)"},
        403: {"description": "Requires MANAGER or ADMIN"},
        404: {"description": "Product or inventory item not found"}
    }
)
async def replace_recipe(
    product_id: int,
    recipe_data: RecipeUpdate,
    current_user: dict = Depends(require_manager_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return await catalog.set_recipe(
        product_id,
        recipe_data.ingredients,
        actor_id=current_user["user_id"],
        name=recipe_data.name
    )
