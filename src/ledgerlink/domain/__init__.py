"""Domain layer for ledgerlink application."""

__all__ = [
    "AccountService",
    "TransactionService",
    "RuleService",
    "RuleApplicationService",
    "MatchService",
    "RestructureService",
]

_SERVICES = {
    "AccountService": "ledgerlink.domain.account",
    "TransactionService": "ledgerlink.domain.transaction",
    "RuleService": "ledgerlink.domain.rule",
    "RuleApplicationService": "ledgerlink.domain.rule_application",
    "MatchService": "ledgerlink.domain.matching",
    "RestructureService": "ledgerlink.domain.restructure",
}


# Import services lazily to avoid circular dependencies with the database layer
def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
