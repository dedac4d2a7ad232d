"""Ledgerlink - double-entry ledger reconciliation."""

__version__ = "0.1.0"


# The CLI pulls in the database layer, so load it on first use
def __getattr__(name):
    if name == "main":
        from ledgerlink.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
