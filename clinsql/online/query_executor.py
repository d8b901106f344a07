import logging

from ..core import DatabaseGateway
from ..exceptions import ExecutionError, GatewayUnavailableError
from ..models import ExecutionResult


class QueryExecutor:
    """Runs statements through the gateway's read-only channel."""

    def __init__(self, gateway: DatabaseGateway):
        self.logger = logging.getLogger(__name__)
        self.gateway = gateway

    def execute(self, sql: str) -> ExecutionResult:
        """
        Execute one statement.

        Errors reported by the database are returned in ``result.error``;
        they are not raised.

        Raises:
            ExecutionError: If the database cannot be reached
        """
        try:
            response = self.gateway.run_sql_ro(sql)
        except GatewayUnavailableError as e:
            self.logger.error(f"Execution failed in transport: {e}")
            raise ExecutionError(str(e)) from e

        if response.error:
            self.logger.info(f"Database rejected statement with {response.error.code}: {response.error.message}")
            return ExecutionResult(error=response.error)

        self.logger.info(f"SQL executed successfully, returned {len(response.data)} rows")
        return ExecutionResult(rows=response.data)
