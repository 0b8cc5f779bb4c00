"""View model that turns repository streams into list and statistics state.

Each published state has at most one live subscription feeding it. Starting a
new load cancels the previous job for that state, and every delivery is tagged
with the generation of the job that produced it so a superseded job can never
overwrite newer state.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine
from dataclasses import replace
from datetime import datetime

from constants import FALLBACK_LOAD_ERROR
from models import DisplayExpense, Expense
from repository import ExpenseRepository
from ui_state import Empty, Error, ExpenseUiState, Loading, StatisticsUiState, Success, describe_state
from utils.date_utils import (
    get_current_month_end,
    get_current_month_start,
    get_end_of_month,
    get_start_of_month,
)
from utils.flow import combine_latest
from utils.logging import logger
from utils.observable import ObservableState


def find_top_category(category_totals: dict[str, float]) -> tuple[str, float] | None:
    """Category with the largest total; equal totals go to the alphabetically first label."""
    if not category_totals:
        return None
    return min(category_totals.items(), key=lambda item: (-item[1], item[0]))


def average_daily(monthly_total: float, day_of_month: int) -> float:
    if day_of_month <= 0:
        return 0.0
    return monthly_total / day_of_month


class ExpenseViewModel:
    """Holds the expense list and statistics state and handles user actions.

    Args:
        repository: Source of expense data
        clock: Returns the current local time; the current month and day of
            month are read from it on every delivery
    """

    def __init__(self, repository: ExpenseRepository, clock: Callable[[], datetime] = datetime.now):
        self._repository = repository
        self._clock = clock

        self.ui_state: ObservableState[ExpenseUiState] = ObservableState(Loading(), "expense list state")
        self.statistics_state: ObservableState[StatisticsUiState] = ObservableState(
            StatisticsUiState(), "statistics state"
        )

        self._list_job: asyncio.Task | None = None
        self._list_generation = 0
        self._statistics_job: asyncio.Task | None = None
        self._statistics_generation = 0

    # List state

    def load_expenses(self) -> asyncio.Task:
        """Follow every expense; the monthly total covers the current calendar month."""
        logger.info("Loading all expenses")
        return self._start_list_job(
            lambda generation: self._collect_expenses(
                generation, self._repository.get_all_expenses, self._current_month_total
            )
        )

    def load_expenses_by_month(self, year: int, month: int) -> asyncio.Task:
        """Follow the expenses of one month.

        Args:
            year: Calendar year
            month: Zero-based month index (0 = January), as calendar pickers report it
        """
        start_of_month = get_start_of_month(year, month)
        end_of_month = get_end_of_month(year, month)
        logger.info(f"Loading expenses for month index {month} of {year}")

        job = self._start_list_job(
            lambda generation: self._collect_expenses(
                generation,
                lambda: self._repository.get_expenses_by_month(start_of_month, end_of_month),
                lambda expenses: sum(expense.amount for expense in expenses),
            )
        )
        self.ui_state.value = Loading()
        return job

    def _start_list_job(self, job_factory: Callable[[int], Coroutine]) -> asyncio.Task:
        if self._list_job is not None and not self._list_job.done():
            logger.debug("Cancelling superseded expense list job")
            self._list_job.cancel()
        self._list_generation += 1
        self._list_job = asyncio.get_running_loop().create_task(job_factory(self._list_generation))
        return self._list_job

    def _publish_list_state(self, generation: int, state: ExpenseUiState) -> None:
        if generation != self._list_generation:
            logger.debug(f"Dropping stale list delivery from job {generation}")
            return
        logger.debug(f"Expense list state -> {describe_state(state)}")
        self.ui_state.value = state

    async def _collect_expenses(
        self,
        generation: int,
        open_stream: Callable[[], AsyncIterator[list[Expense]]],
        total_of: Callable[[list[Expense]], float],
    ) -> None:
        stream = None
        try:
            stream = open_stream()
            async for expenses in stream:
                if not expenses:
                    state = Empty()
                else:
                    state = Success(
                        expenses=tuple(DisplayExpense.from_entity(expense) for expense in expenses),
                        monthly_total=total_of(expenses),
                    )
                self._publish_list_state(generation, state)
        except Exception as e:
            logger.error(f"Error loading expenses: {e}")
            self._publish_list_state(generation, Error(str(e) or FALLBACK_LOAD_ERROR))
        finally:
            if stream is not None:
                await stream.aclose()

    def _current_month_total(self, expenses: list[Expense]) -> float:
        now = self._clock()
        start_of_month = get_current_month_start(now)
        end_of_month = get_current_month_end(now)
        return sum(
            expense.amount for expense in expenses if start_of_month <= expense.date < end_of_month
        )

    # Statistics state

    def load_statistics(self) -> asyncio.Task:
        """Follow category totals and the current month's total."""
        logger.info("Loading statistics")
        if self._statistics_job is not None and not self._statistics_job.done():
            logger.debug("Cancelling superseded statistics job")
            self._statistics_job.cancel()
        self._statistics_generation += 1
        self.statistics_state.value = replace(self.statistics_state.value, is_loading=True)
        self._statistics_job = asyncio.get_running_loop().create_task(
            self._collect_statistics(self._statistics_generation)
        )
        return self._statistics_job

    async def _collect_statistics(self, generation: int) -> None:
        now = self._clock()
        start_of_month = get_current_month_start(now)
        end_of_month = get_current_month_end(now)

        combined = None
        try:
            combined = combine_latest(
                self._repository.get_category_totals(),
                self._repository.get_monthly_total(start_of_month, end_of_month),
            )
            async for category_totals, monthly_total in combined:
                total = monthly_total or 0.0
                state = StatisticsUiState(
                    is_loading=False,
                    category_totals=dict(category_totals),
                    monthly_total=total,
                    average_daily=average_daily(total, self._clock().day),
                    top_category=find_top_category(category_totals),
                    error_message=None,
                )
                if generation != self._statistics_generation:
                    logger.debug(f"Dropping stale statistics delivery from job {generation}")
                    continue
                self.statistics_state.value = state
        except Exception as e:
            logger.error(f"Error loading statistics: {e}")
            if generation == self._statistics_generation:
                self.statistics_state.value = replace(
                    self.statistics_state.value,
                    is_loading=False,
                    error_message=f"Failed to load statistics: {e}",
                )
        finally:
            if combined is not None:
                await combined.aclose()

    # Actions

    async def add_expense(
        self, amount: float, category: str, date: int, note: str | None = None
    ) -> int | None:
        """Store a new expense. The live list picks it up without a reload.

        Failures are reported through the list state.

        Returns:
            The new expense id, or None if it could not be stored
        """
        logger.info(f"Adding expense: {amount} in {category}")
        try:
            expense = Expense(amount=amount, category=category, date=date, note=note)
            expense_id = await self._repository.insert_expense(expense)
        except Exception as e:
            logger.error(f"Error adding expense: {e}")
            self.ui_state.value = Error(f"Failed to add expense: {e}")
            return None
        logger.info(f"Expense {expense_id} added")
        return expense_id

    async def delete_expense(self, expense: DisplayExpense | Expense) -> bool:
        """Delete the stored row matching this expense.

        Failures are reported through the list state.

        Returns:
            Whether a row was deleted
        """
        entity = expense.to_entity() if isinstance(expense, DisplayExpense) else expense
        logger.info(f"Deleting expense {entity.id}")
        try:
            deleted = await self._repository.delete_expense(entity)
        except Exception as e:
            logger.error(f"Error deleting expense {entity.id}: {e}")
            self.ui_state.value = Error(f"Failed to delete expense: {e}")
            return False
        if not deleted:
            logger.warning(f"Expense {entity.id} was not deleted, stored row did not match")
        return bool(deleted)

    async def close(self) -> None:
        """Stop both live subscriptions."""
        jobs = [job for job in (self._list_job, self._statistics_job) if job is not None]
        for job in jobs:
            job.cancel()
        await asyncio.gather(*jobs, return_exceptions=True)
        logger.debug("View model closed")
