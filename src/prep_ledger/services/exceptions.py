"""Service layer exception classes for Prep Ledger.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the costing engine.

Exception Hierarchy:
    ServiceError (base)
    ├── InvalidQuantity
    ├── NotFoundError
    │   ├── ProductNotFound
    │   ├── PrepRecipeNotFound
    │   └── ProductionRunNotFound
    ├── InvalidState
    ├── Unauthorized
    ├── InvalidAdjustment
    ├── ValidationError
    ├── LedgerImmutableError
    └── DatabaseError

Zero-yield completions are not an exception: they finish with a cost per
unit of zero and report a "zero_yield" warning instead.
"""


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions inherit from this class.
    """

    pass


class InvalidQuantity(ServiceError):
    """Raised when a quantity is negative or not a finite number.

    Args:
        quantity: The rejected value
        context: What the quantity was for (e.g. "ingredient 12")

    Example:
        >>> raise InvalidQuantity(-2, "conversion")
        InvalidQuantity: Invalid quantity for conversion: -2 (must be a finite number >= 0)
    """

    def __init__(self, quantity, context: str = "operation"):
        self.quantity = quantity
        self.context = context
        super().__init__(
            f"Invalid quantity for {context}: {quantity} (must be a finite number >= 0)"
        )


class NotFoundError(ServiceError):
    """Base class for unknown run, product or blueprint references."""

    pass


class ProductNotFound(NotFoundError):
    """Raised when product cannot be found by ID.

    Example:
        >>> raise ProductNotFound(123)
        ProductNotFound: Product with ID 123 not found
    """

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")


class PrepRecipeNotFound(NotFoundError):
    """Raised when a prep recipe cannot be found by ID."""

    def __init__(self, prep_recipe_id):
        self.prep_recipe_id = prep_recipe_id
        super().__init__(f"Prep recipe with ID {prep_recipe_id} not found")


class ProductionRunNotFound(NotFoundError):
    """Raised when a production run cannot be found by ID."""

    def __init__(self, production_run_id):
        self.production_run_id = production_run_id
        super().__init__(f"Production run with ID {production_run_id} not found")


class InvalidState(ServiceError):
    """Raised when a production run is not in the state an operation needs.

    Completing an already completed run raises this; the second attempt
    never posts ledger entries.

    Example:
        >>> raise InvalidState(7, "completed", "in_progress")
        InvalidState: Production run 7 is completed; expected in_progress
    """

    def __init__(self, production_run_id, actual_status: str, expected_status: str):
        self.production_run_id = production_run_id
        self.actual_status = actual_status
        self.expected_status = expected_status
        super().__init__(
            f"Production run {production_run_id} is {actual_status}; "
            f"expected {expected_status}"
        )


class Unauthorized(ServiceError):
    """Raised when the caller has no access to the restaurant."""

    def __init__(self, identity, restaurant_id):
        self.identity = identity
        self.restaurant_id = restaurant_id
        super().__init__(f"'{identity}' is not authorized for restaurant '{restaurant_id}'")


class InvalidAdjustment(ServiceError):
    """Raised when a completion adjustment is malformed or targets a product
    outside the run's ingredients and output."""

    def __init__(self, product_id, message: str):
        self.product_id = product_id
        super().__init__(f"Invalid adjustment for product {product_id}: {message}")


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class LedgerImmutableError(ServiceError):
    """Raised when code tries to update or delete an inventory ledger entry."""

    def __init__(self, transaction_id, action: str):
        self.transaction_id = transaction_id
        self.action = action
        super().__init__(
            f"Inventory transaction {transaction_id} is immutable; {action} is not allowed. "
            f"Post an offsetting entry instead."
        )


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
