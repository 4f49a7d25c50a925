class ItemError(Exception):
    """Failure scoped to a single batch item; reported as status "failed" for that item only"""


class ItemValidationError(ItemError):
    """Item payload or envelope did not validate"""


class UnsupportedOperationError(ItemValidationError):
    """No handler for the item's entity_type/action combination"""


class ItemPersistenceError(ItemError):
    """Item was valid but could not be written"""
