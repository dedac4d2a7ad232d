"""Account domain service."""

from typing import Optional
from ledgerlink.database.base import Database
from ledgerlink.domain.entities import Account as AccountEntity, AccountType, DEFAULT_UNIT
from ledgerlink.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
)


def _account_type(value: AccountType | str) -> AccountType:
    try:
        return AccountType(value)
    except ValueError as e:
        allowed = ", ".join(t.value for t in AccountType)
        raise ValidationError(f"Invalid account type '{value}'. Must be one of: {allowed}") from e


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        name: str,
        type: AccountType | str = AccountType.ASSET,
        unit: str = DEFAULT_UNIT,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a new account.

        Args:
            name: Account name
            type: Account type (asset, liability, income, expense, equity)
            unit: Unit of account (currency, stock or crypto symbol)
            parent_id: Optional parent account ID
            description: Optional description

        Returns:
            Account ID

        Raises:
            ValidationError: If name, type or unit is invalid
            ConflictError: If account name already exists
            NotFoundError: If the parent account doesn't exist
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        if not unit or not unit.strip():
            raise ValidationError("Account unit is required")
        account_type = _account_type(type)

        if self.db.get_account_by_name(name) is not None:
            raise ConflictError(f"Account with name '{name}' already exists")

        if parent_id is not None and self.db.get_account(parent_id) is None:
            raise NotFoundError(account_not_found(parent_id))

        return self.db.create_account(
            name=name.strip(),
            type=account_type.value,
            unit=unit.strip(),
            parent_id=parent_id,
            description=description,
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts()

    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        type: Optional[AccountType | str] = None,
        parent_id: Optional[int] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update an account.

        The unit cannot change once an account exists, because entries denormalize it.

        Raises:
            NotFoundError: If account or parent not found
            ConflictError: If the new name is taken
            ValidationError: If the type is invalid or the account would be its own parent
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        if name is not None:
            existing = self.db.get_account_by_name(name)
            if existing is not None and existing.id != account_id:
                raise ConflictError(f"Account with name '{name}' already exists")

        if parent_id is not None:
            if parent_id == account_id:
                raise ValidationError("An account cannot be its own parent")
            if self.db.get_account(parent_id) is None:
                raise NotFoundError(account_not_found(parent_id))

        self.db.update_account(
            account_id=account_id,
            name=name,
            type=_account_type(type).value if type is not None else None,
            parent_id=parent_id,
            description=description,
            is_active=is_active,
        )

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete

        Raises:
            NotFoundError: If account not found
            DependencyError: If entries or rules still reference the account
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        entry_count = self.db.get_account_entry_count(account_id)
        rule_count = self.db.get_account_rule_count(account_id)
        if entry_count > 0 or rule_count > 0:
            raise DependencyError(account_delete_blocked(account_id, entry_count, rule_count))

        self.db.delete_account(account_id)
