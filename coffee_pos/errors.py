"""Error taxonomy for the POS service.

Three families, matching how callers are expected to react:

* ``ValidationFailed``: the request itself is malformed. Raised before any
  storage access; the caller fixes the input and retries.
* ``BusinessRuleViolation``: the request is well formed but cannot be applied
  to the current state (unknown product, short stock, ...). Raised before
  anything is committed and carries structured details.
* ``StorageFailure``: the database failed. The transaction has been rolled
  back; the caller only learns that the operation failed.
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class PosError(Exception):
    status_code = 500
    code = "pos_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        for key, value in self.details.items():
            body[key] = str(value) if isinstance(value, Decimal) else value
        return body


# Validation errors

class ValidationFailed(PosError, ValueError):
    status_code = 400
    code = "validation_error"


class EmptyOrder(ValidationFailed):
    code = "empty_order"

    def __init__(self):
        super().__init__("Order items are required.")


class InvalidQuantity(ValidationFailed):
    code = "invalid_quantity"

    def __init__(self, product_id: Any, quantity: Any):
        super().__init__(
            "Each item must have a valid product ID and a positive integer quantity.",
            product_id=product_id,
            quantity=quantity,
        )


class InvalidPaymentMethod(ValidationFailed):
    code = "invalid_payment_method"

    def __init__(self, payment_method: Any):
        super().__init__(
            "Valid payment method (cash or card) is required.",
            payment_method=payment_method,
        )


class MissingCashReceived(ValidationFailed):
    code = "missing_cash_received"

    def __init__(self):
        super().__init__("cash_received is required for cash payments.")


class InvalidStatus(ValidationFailed):
    code = "invalid_status"

    def __init__(self, status: Any):
        super().__init__(
            "Valid status (pending, completed, or cancelled) is required.",
            status=status,
        )


class InvalidPage(ValidationFailed):
    code = "invalid_page"

    def __init__(self, page: Any):
        super().__init__("Invalid page number. Must be a positive integer.", page=page)


class InvalidPageSize(ValidationFailed):
    code = "invalid_page_size"

    def __init__(self, page_size: Any, maximum: int):
        super().__init__(
            f"Invalid limit. Must be between 1 and {maximum}.",
            limit=page_size,
        )


class InvalidDate(ValidationFailed):
    code = "invalid_date"

    def __init__(self, field: str, value: Any):
        super().__init__(
            "Invalid date format. Please use YYYY-MM-DD format.",
            field=field,
            value=value,
        )


class InvalidDateRange(ValidationFailed):
    code = "invalid_date_range"

    def __init__(self, start: Any, end: Any):
        super().__init__(
            "End date cannot be before start date.",
            start_date=str(start),
            end_date=str(end),
        )


class InvalidAmount(ValidationFailed):
    code = "invalid_amount"

    def __init__(self, field: str, value: Any):
        super().__init__(
            "Invalid amount values. Please enter valid numbers.",
            field=field,
            value=value,
        )


class InvalidAmountRange(ValidationFailed):
    code = "invalid_amount_range"

    def __init__(self, minimum: Any, maximum: Any):
        super().__init__(
            "Maximum amount cannot be less than minimum amount.",
            min_amount=minimum,
            max_amount=maximum,
        )


class InvalidCriteria(ValidationFailed):
    code = "invalid_criteria"

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid value for {field}.", field=field, value=value)


# Business-rule errors

class BusinessRuleViolation(PosError):
    status_code = 409
    code = "business_rule_violation"


class ProductNotFound(BusinessRuleViolation):
    status_code = 404
    code = "product_not_found"

    def __init__(self, product_id: Any):
        super().__init__(f"Product with ID {product_id} not found.", product_id=product_id)


class ProductUnavailable(BusinessRuleViolation):
    code = "product_unavailable"

    def __init__(self, product_id: int, name: str):
        super().__init__(
            f"Product {name} is not available.",
            product_id=product_id,
            product_name=name,
        )


class InsufficientStock(BusinessRuleViolation):
    code = "insufficient_stock"

    def __init__(self, ingredient: str, ingredient_id: int, required: Decimal, available: Decimal):
        super().__init__(
            f"Not enough {ingredient} in stock for this order.",
            ingredient=ingredient,
            ingredient_id=ingredient_id,
            required=required,
            available=available,
        )
        self.ingredient = ingredient
        self.ingredient_id = ingredient_id
        self.required = required
        self.available = available


class InsufficientPayment(BusinessRuleViolation):
    status_code = 400
    code = "insufficient_payment"

    def __init__(self, required: Decimal, received: Decimal):
        super().__init__(
            "Cash received is less than the order total.",
            required=required,
            received=received,
        )
        self.required = required
        self.received = received


class OrderNotFound(BusinessRuleViolation):
    status_code = 404
    code = "order_not_found"

    def __init__(self, order_id: Any):
        super().__init__("Order not found.", order_id=order_id)


class InventoryItemNotFound(BusinessRuleViolation):
    status_code = 404
    code = "inventory_item_not_found"

    def __init__(self, item_id: Any):
        super().__init__("Inventory item not found.", inventory_item_id=item_id)


class DuplicateInventoryItem(BusinessRuleViolation):
    code = "duplicate_inventory_item"

    def __init__(self, name: str):
        super().__init__(f"Inventory item '{name}' already exists.", name=name)


class InvalidStatusTransition(BusinessRuleViolation):
    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change order status from {current} to {requested}.",
            current_status=current,
            requested_status=requested,
        )


# Storage errors

class StorageFailure(PosError):
    status_code = 500
    code = "storage_failure"


class OrderPersistenceError(StorageFailure):
    code = "order_failed"

    def __init__(self, message: str = "Error creating order."):
        super().__init__(message)


class QueryFailed(StorageFailure):
    code = "query_failed"

    def __init__(self, message: str = "Error fetching orders."):
        super().__init__(message)


class OrderTimeout(PosError):
    status_code = 504
    code = "order_timeout"

    def __init__(self, timeout: Optional[float]):
        super().__init__("Order creation timed out; nothing was saved.", timeout=timeout)
