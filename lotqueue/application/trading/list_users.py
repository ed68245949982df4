"""
Use case: List every user (admin only).

Output: list[User] ordered by id
Side effects: None.
"""

from typing import Callable

from lotqueue.domain.trading.entities import User
from lotqueue.domain.trading.ports import LedgerUnitOfWork


class ListUsersUseCase:
    """Returns all registered users."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self) -> list[User]:
        """Run the user listing use case."""
        with self._uow_factory() as uow:
            return uow.users.list_all()
