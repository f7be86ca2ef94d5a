# Package exports - these allow cleaner imports like:
# from coffee_pos.services import OrderService, OrderQueryBuilder
from coffee_pos.services.audit import AuditSink, LogService
from coffee_pos.services.catalog_service import CatalogService
from coffee_pos.services.inventory_service import InventoryService
from coffee_pos.services.order_query import OrderQueryBuilder, OrderSearchCriteria, OrderSearchResult, Predicate
from coffee_pos.services.order_service import OrderService
from coffee_pos.services.report_service import ReportService
