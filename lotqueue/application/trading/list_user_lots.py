"""
Use case: List the current user's lots.

Input: user_id
Output: list[Lot], newest first
Side effects: None.
"""

from typing import Callable

from lotqueue.domain.trading.entities import Lot
from lotqueue.domain.trading.ports import LedgerUnitOfWork


class ListUserLotsUseCase:
    """Returns every lot a user has bought, active and sold."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, user_id: int) -> list[Lot]:
        """Run the lot listing use case."""
        with self._uow_factory() as uow:
            return uow.lots.list_by_user(user_id)
