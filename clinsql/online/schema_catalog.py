import logging
from typing import List

from ..core import DatabaseGateway
from ..exceptions import CatalogError, GatewayUnavailableError
from ..models import SchemaTable


INTROSPECTION_SQL = """
SELECT table_name AS "table",
       array_agg(column_name::text ORDER BY ordinal_position) AS columns
FROM information_schema.columns
WHERE table_schema = '{schema}'
GROUP BY table_name
ORDER BY table_name
"""


class SchemaCatalog:
    """Reads the live table/column whitelist from the database."""

    def __init__(self, gateway: DatabaseGateway):
        self.logger = logging.getLogger(__name__)
        self.gateway = gateway

    def fetch(self) -> List[SchemaTable]:
        """
        Fetch the current whitelist, one entry per table.

        Columns keep their physical order. Nothing is cached.

        Returns:
            Ordered list of tables

        Raises:
            CatalogError: If the introspection query fails
        """
        schema = self.gateway.schema.replace("'", "''")
        try:
            response = self.gateway.run_sql_ro(INTROSPECTION_SQL.format(schema=schema))
        except GatewayUnavailableError as e:
            raise CatalogError(str(e)) from e

        if response.error:
            raise CatalogError(response.error.message)

        whitelist = [
            SchemaTable(table=row["table"], columns=list(row.get("columns") or []))
            for row in response.data
        ]
        self.logger.info(f"Fetched whitelist with {len(whitelist)} tables from schema {self.gateway.schema}")
        return whitelist
