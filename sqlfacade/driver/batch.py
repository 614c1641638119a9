"""Batch wrappers handed to ``Sql.with_batch`` callbacks."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from sqlfacade.parameters.binder import bind_parameters
from sqlfacade.utils.logging import get_logger, log_fields
from sqlfacade.utils.type_guards import is_iterable_parameters

if TYPE_CHECKING:
    from sqlfacade.driver.statement import PlainStatement, PreparedStatement, Statement
    from sqlfacade.parameters.types import BindingPlan

__all__ = ("BatchingPreparedStatementWrapper", "BatchingStatementWrapper")

logger = get_logger("driver.batch")


class _BatchingWrapper(ABC):
    """Counts units, flushes every ``batch_size`` of them and keeps the counts."""

    __slots__ = ("_pending", "_results", "batch_size", "statement")

    def __init__(self, statement: "Statement", batch_size: int = 0) -> None:
        self.statement = statement
        self.batch_size = batch_size
        self._pending = 0
        self._results: list[int] = []

    @property
    def pending(self) -> int:
        """Units added since the last flush."""
        return self._pending

    @abstractmethod
    def _execute_pending(self) -> "list[int]":
        """Run the units added since the last flush and return their counts."""

    def _unit_added(self) -> None:
        self._pending += 1
        if self.batch_size > 0 and self._pending >= self.batch_size:
            self._flush()

    def _flush(self) -> None:
        counts = self._execute_pending()
        self._pending = 0
        self._results.extend(counts)
        logger.debug(
            "Successfully executed batch with %d command(s)",
            len(counts),
            extra=log_fields(self.statement.sql or None, units=len(counts)),
        )

    def execute_batch(self) -> "list[int]":
        """Flush pending units.

        Returns:
            One update count per unit added since the previous call, including units
            already flushed automatically, in submission order.
        """
        self._flush()
        results, self._results = self._results, []
        return results

    def clear_batch(self) -> None:
        """Drop pending units and the counts collected since the last ``execute_batch``."""
        self.statement.clear_batch()  # type: ignore[attr-defined]
        self._pending = 0
        self._results.clear()

    def close(self) -> None:
        self.statement.close()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name == "statement":
            raise AttributeError(name)
        return getattr(self.statement, name)


class BatchingStatementWrapper(_BatchingWrapper):
    """Collects SQL texts and runs them in partitions of ``batch_size``.

    Example::

        with sql.batch(batch_size=2) as stmt:
            stmt.add_batch("insert into t values (1)")
            stmt.add_batch("insert into t values (2)")  # flushed here
            stmt.add_batch("insert into t values (3)")
    """

    __slots__ = ()

    statement: "PlainStatement"

    def add_batch(self, sql: str) -> None:
        logger.debug("Adding to batch: %s", sql)
        self.statement.add_batch(sql)
        self._unit_added()

    def _execute_pending(self) -> "list[int]":
        return self.statement.execute_batch()


class BatchingPreparedStatementWrapper(_BatchingWrapper):
    """Collects parameter sets for one prepared statement.

    ``add_batch`` accepts the arguments either spread out, ``add_batch(1, "a")``, or as
    one list, ``add_batch([1, "a"])``. When the statement used named placeholders the
    arguments are bound through the binding plan, so ``add_batch({"id": 1})`` works
    for ``... where id = :id``.
    """

    __slots__ = ("executemany", "plan")

    statement: "PreparedStatement"

    def __init__(
        self,
        statement: "PreparedStatement",
        plan: "Optional[BindingPlan]" = None,
        batch_size: int = 0,
        executemany: bool = False,
    ) -> None:
        super().__init__(statement, batch_size)
        self.plan = plan
        self.executemany = executemany

    def add_batch(self, *args: Any) -> None:
        values = list(args[0]) if len(args) == 1 and is_iterable_parameters(args[0]) else list(args)
        if self.plan:
            values = bind_parameters(self.plan, values, self.statement.sql)
        logger.debug("Adding to batch: %s %s", self.statement.sql, values)
        self.statement.set_parameters(values)
        self.statement.add_batch()
        self._unit_added()

    def _execute_pending(self) -> "list[int]":
        return self.statement.execute_batch(executemany=self.executemany)
