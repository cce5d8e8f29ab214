from .store import Store
from .transaction import Transaction

__all__ = [
    "Store",
    "Transaction",
]
