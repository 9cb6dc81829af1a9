from .contracts import LedgerAccessor
from .couch_ledger import CouchLedger
from .sqlite_ledger import SqliteLedger

__all__ = ["LedgerAccessor", "CouchLedger", "SqliteLedger"]
