"""Action dispatch adapter.

Maps action names and JSON-encoded argument objects onto the Database
port, and encodes results as JSON-compatible values.

Actions and their arguments (all optional unless noted):

    getTableNames            transactionId, timeout
    getTableColumnInfos      tableName (required), transactionId, timeout
    transactionStart         timeout
    transactionFinish        transactionId (required), commit (required), timeout
    transactionIsAutocommit  -
    queryExecute             query (required), transactionId, timeout
    querySelect              query (required), columnTypes (required),
                             transactionId, timeout

``timeout`` is the retry delay in milliseconds. ``columnTypes`` entries
are type names ("Long", "String", ...) or their wire indexes (0-5).

Usage:
    dispatcher = ActionDispatcher(db)
    token = dispatcher.dispatch("transactionStart", "{}").result()
    dispatcher.dispatch(
        "queryExecute", '{"query": "DELETE FROM notes", "transactionId": 0}'
    ).result()
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError

from ab_database.domain.errors import (
    InvalidArgumentError,
    MalformedArgumentError,
    UnknownActionError,
)
from ab_database.domain.value_objects import ColumnInfo, TransactionToken
from ab_database.infrastructure.logging import get_logger
from ab_database.ports.inbound.database import Database

logger = get_logger(__name__)


class ActionArgs(BaseModel):
    """Base model for one action's argument object.

    Strict mode keeps JSON booleans out of integer fields and numeric
    strings out of token fields.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True)


class StartArgs(ActionArgs):
    """Arguments of transactionStart."""

    timeout: int | None = Field(None, description="Retry delay in milliseconds")


class ScopedArgs(StartArgs):
    """Arguments shared by operations that run inside a transaction scope."""

    transaction_id: NonNegativeInt | None = Field(
        None, alias="transactionId", description="Token of the open transaction"
    )

    @property
    def token(self) -> TransactionToken | None:
        if self.transaction_id is None:
            return None
        return TransactionToken(self.transaction_id)


class TableArgs(ScopedArgs):
    """Arguments of getTableColumnInfos."""

    table_name: str = Field(..., alias="tableName", description="Table to describe")


class FinishArgs(StartArgs):
    """Arguments of transactionFinish."""

    transaction_id: NonNegativeInt = Field(
        ..., alias="transactionId", description="Token of the transaction to finish"
    )
    commit: bool = Field(..., description="Commit when true, roll back when false")


class ExecuteArgs(ScopedArgs):
    """Arguments of queryExecute."""

    query: str = Field(..., description="Single SQL statement")


class SelectArgs(ExecuteArgs):
    """Arguments of querySelect."""

    column_types: list[str | int] = Field(
        ..., alias="columnTypes", description="Type names or wire indexes"
    )


def parse_args(
    model: type[ActionArgs], action: str, raw: str | bytes | None
) -> ActionArgs:
    """Validate an argument object against an action's model.

    Empty or missing text is an empty object.

    Raises:
        MalformedArgumentError: If the text is not a JSON object of the
            expected shape.
    """
    if raw is None or not raw.strip():
        raw = "{}"
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedArgumentError(f"{action}: {_describe(e)}") from e


def _describe(error: ValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        problems.append(f"'{location}' {detail['msg']}" if location else detail["msg"])
    return "; ".join(problems)


def to_json_compatible(value: Any) -> Any:
    """Encode an operation result for JSON output."""
    if isinstance(value, ColumnInfo):
        return value.to_dict()
    if isinstance(value, list):
        return [to_json_compatible(item) for item in value]
    return value


class ActionDispatcher:
    """Routes named actions to Database operations.

    Every outcome, including unknown actions and malformed arguments,
    is delivered through the returned future.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._handlers: dict[
            str, tuple[type[ActionArgs], Callable[[Any], Future[Any]]]
        ] = {
            "getTableNames": (ScopedArgs, self._get_table_names),
            "getTableColumnInfos": (TableArgs, self._get_table_column_infos),
            "transactionStart": (StartArgs, self._transaction_start),
            "transactionFinish": (FinishArgs, self._transaction_finish),
            "transactionIsAutocommit": (ActionArgs, self._transaction_is_autocommit),
            "queryExecute": (ExecuteArgs, self._query_execute),
            "querySelect": (SelectArgs, self._query_select),
        }

    @property
    def actions(self) -> list[str]:
        """Names of all supported actions."""
        return list(self._handlers)

    def dispatch(self, action: str, raw_args: str | bytes | None = None) -> Future[Any]:
        """Run one action.

        Args:
            action: Action name, e.g. ``"querySelect"``.
            raw_args: JSON object text holding the arguments.

        Returns:
            A future resolving to the JSON-compatible result.
        """
        entry = self._handlers.get(action)
        try:
            if entry is None:
                raise UnknownActionError(action)
            model, handler = entry
            future = handler(parse_args(model, action, raw_args))
        except InvalidArgumentError as e:
            logger.info("action_rejected", action=action, error=str(e))
            return _failed(e)

        return _encoded(future)

    def _get_table_names(self, args: ScopedArgs) -> Future[Any]:
        return self._database.get_table_names(args.token, args.timeout)

    def _get_table_column_infos(self, args: TableArgs) -> Future[Any]:
        return self._database.get_table_column_infos(
            args.table_name, args.token, args.timeout
        )

    def _transaction_start(self, args: StartArgs) -> Future[Any]:
        return self._database.start_transaction(args.timeout)

    def _transaction_finish(self, args: FinishArgs) -> Future[Any]:
        return self._database.finish_transaction(
            TransactionToken(args.transaction_id), args.commit, args.timeout
        )

    def _transaction_is_autocommit(self, args: ActionArgs) -> Future[Any]:
        return self._database.check_autocommit()

    def _query_execute(self, args: ExecuteArgs) -> Future[Any]:
        return self._database.execute(args.query, args.token, args.timeout)

    def _query_select(self, args: SelectArgs) -> Future[Any]:
        return self._database.select(
            args.query, args.column_types, args.token, args.timeout
        )


def _failed(error: BaseException) -> Future[Any]:
    future: Future[Any] = Future()
    future.set_exception(error)
    return future


def _encoded(source: Future[Any]) -> Future[Any]:
    result: Future[Any] = Future()

    def relay(done: Future[Any]) -> None:
        if done.cancelled():
            result.cancel()
            return
        error = done.exception()
        if error is not None:
            result.set_exception(error)
        else:
            result.set_result(to_json_compatible(done.result()))

    source.add_done_callback(relay)
    return result
