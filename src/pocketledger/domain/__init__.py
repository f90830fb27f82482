"""Domain layer for pocketledger application."""

_SERVICES = {
    "Ledger": "pocketledger.domain.ledger",
    "ReconciliationService": "pocketledger.domain.reconciliation",
    "ArchiveService": "pocketledger.domain.archive",
    "HistoryService": "pocketledger.domain.history",
    "AssetService": "pocketledger.domain.assets",
    "BudgetService": "pocketledger.domain.budgets",
    "SummaryService": "pocketledger.domain.queries",
    "DataTransferService": "pocketledger.domain.transfer",
}

__all__ = list(_SERVICES)


# Services are imported lazily so that config and database modules can import
# entities and errors without pulling in the whole service layer.
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
