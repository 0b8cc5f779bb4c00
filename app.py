"""Application wiring: one database, one repository, any number of view models."""

from functools import cached_property

import config
from db import Database
from repository import ExpenseRepository
from utils.logging import logger
from viewmodel import ExpenseViewModel


class ExpenseTrackerApp:
    """Owns the app-wide dependencies. Everything is created on first access."""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or config.DB_PATH
        self._view_models: list[ExpenseViewModel] = []

    @cached_property
    def database(self) -> Database:
        logger.info(f"Using database at {self.db_path}")
        return Database(self.db_path)

    @cached_property
    def repository(self) -> ExpenseRepository:
        return ExpenseRepository(self.database)

    async def start(self) -> None:
        """Initialize database tables."""
        logger.info("Starting expense tracker")
        await self.database.create_tables()

    def create_view_model(self, load: bool = True) -> ExpenseViewModel:
        """Create a view model bound to the shared repository.

        Args:
            load: Start following all expenses straight away
        """
        view_model = ExpenseViewModel(self.repository)
        self._view_models.append(view_model)
        if load:
            view_model.load_expenses()
        return view_model

    async def shutdown(self) -> None:
        """Stop every view model and close database connections."""
        logger.info("Shutting down expense tracker")
        for view_model in self._view_models:
            await view_model.close()
        self._view_models.clear()
        if "database" in self.__dict__:
            await self.database.close()
