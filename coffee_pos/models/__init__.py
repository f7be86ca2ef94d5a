# Package exports - these allow cleaner imports like:
# from coffee_pos.models import Order, OrderItem
# Used by alembic/env.py and create_all so every table is registered
from coffee_pos.models.user import User, UserRole
from coffee_pos.models.product import Product, Recipe, RecipeIngredient
from coffee_pos.models.inventory import InventoryItem
from coffee_pos.models.order import Order, OrderItem, OrderStatus, PaymentMethod
from coffee_pos.models.system_log import SystemLog, LogLevel, LogCategory
