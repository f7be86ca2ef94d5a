# Package exports - these allow cleaner imports like:
# from coffee_pos.schemas import OrderCreate, OrderResponse
from coffee_pos.schemas.product import ProductCreate, ProductUpdate, ProductResponse, RecipeUpdate, RecipeResponse
from coffee_pos.schemas.inventory import InventoryItemCreate, InventoryItemUpdate, InventoryItemResponse, StockAdjustment
from coffee_pos.schemas.order import OrderCreate, OrderStatusUpdate, OrderResponse, OrderSummaryResponse, OrderListResponse
