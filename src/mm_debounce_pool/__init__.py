from .callbacks import from_callbacks
from .errors import InvalidCurriedResolverError, InvalidResolverError
from .keyed_operation_pool import KeyedOperationPool

__all__ = [
    "InvalidCurriedResolverError",
    "InvalidResolverError",
    "KeyedOperationPool",
    "from_callbacks",
]
