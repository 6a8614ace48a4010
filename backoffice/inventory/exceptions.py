"""
Errors raised by the stock operation engine.

Views translate them into ``{'success': False, 'error': message}`` responses;
they never cross the API boundary as exceptions.
"""


class InventoryError(Exception):
    """Base class for stock operation failures"""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class ValidationError(InventoryError):
    """Malformed input: non-positive quantity, same source and destination, missing reason"""


class InsufficientStockError(InventoryError):
    """Requested debit exceeds the available quantity"""

    def __init__(self, requested, available, message=None):
        self.requested = requested
        self.available = available
        super().__init__(message or f"Insufficient available stock: requested {requested}, available {available}")


class NotFoundError(InventoryError):
    """Referenced inventory row, product or site does not exist"""


class ConcurrentUpdateError(InventoryError):
    """Inventory row changed between read and write"""
