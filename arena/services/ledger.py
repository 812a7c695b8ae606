"""Coin ledger: every balance change goes through here and leaves a Transaction row."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from arena.models import Transaction, User
from arena.models.transaction import TRANSACTION_TYPES

logger = logging.getLogger("arena.ledger")


class InsufficientCoins(ValueError):
    pass


def apply_coins(
    session: AsyncSession,
    user: User,
    amount: int,
    tx_type: str,
    description: str = "",
    tournament_id: Optional[int] = None,
) -> Transaction:
    """Change user's balance by amount (signed) and record it. Does not flush."""
    if tx_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {tx_type}")
    balance_before = user.coins or 0
    balance_after = balance_before + amount
    if balance_after < 0:
        raise InsufficientCoins("Insufficient coins")
    user.coins = balance_after
    tx = Transaction(
        user_id=user.id,
        type=tx_type,
        amount=amount,
        description=description,
        balance_before=balance_before,
        balance_after=balance_after,
        tournament_id=tournament_id,
    )
    session.add(tx)
    logger.info("User %s %s %+d coins (%d -> %d)", user.id, tx_type, amount, balance_before, balance_after)
    return tx
