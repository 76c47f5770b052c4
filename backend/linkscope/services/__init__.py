"""Services for linkscope backend"""

from .transaction_store import InMemoryTransactionStore, MempoolTransactionStore

__all__ = ["InMemoryTransactionStore", "MempoolTransactionStore"]
