"""Transaction records derived from confirmed receipts."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

TransactionType = Literal["expense", "income"]


@dataclass(frozen=True)
class TransactionDraft:
    """An expense entry ready to be reviewed and stored."""

    type: TransactionType
    category: str
    title: str
    note: str
    amount: Decimal
    date: str  # ISO date, YYYY-MM-DD
    wallet: str | None = None


@dataclass(frozen=True)
class TransactionCheck:
    """Pre-conversion review of a parsed receipt."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
