#!/usr/bin/env python3
"""
Legacy (v3) source reader

Reads the v3 tables in batches. Every table name carries the configured
prefix (``dsctickets_`` unless the deployment renamed it). Reads are ordered
by primary key so that a run visits rows deterministically.
"""

import logging
from typing import Any, Dict, Iterator, List

from core.database_manager import DatabaseAdapter
from core.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_TABLE_PREFIX = 'dsctickets_'
DEFAULT_BATCH_SIZE = 500

SOURCE_TABLES = {
    'guild': 'guilds',
    'category': 'categories',
    'ticket': 'tickets',
    'channel': 'channel_entities',
    'role': 'role_entities',
    'user': 'user_entities',
    'message': 'messages',
}


class LegacySource:
    """Batched, read-only access to a v3 database"""

    def __init__(self, adapter: DatabaseAdapter, prefix: str = DEFAULT_TABLE_PREFIX,
                 batch_size: int = DEFAULT_BATCH_SIZE):
        self.adapter = adapter
        self.prefix = prefix or ''
        self.batch_size = max(1, int(batch_size))

    def close(self):
        self.adapter.close()

    def table_name(self, entity: str) -> str:
        return self.prefix + SOURCE_TABLES[entity]

    def _select(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        result = self.adapter.execute_query(sql, params)
        if not result['success']:
            raise StorageError(f"Source read failed: {result['error']}")
        return result['data']

    def iter_rows(self, entity: str, order_by: str = 'id') -> Iterator[Dict[str, Any]]:
        """Yield every row of an entity's table, ``batch_size`` rows per query"""
        quote = self.adapter.quote_identifier
        ph = self.adapter.placeholder
        sql = (f"SELECT * FROM {quote(self.table_name(entity))} "
               f"ORDER BY {quote(order_by)} LIMIT {ph} OFFSET {ph}")
        offset = 0
        while True:
            batch = self._select(sql, (self.batch_size, offset))
            logger.debug(f"Read {len(batch)} {entity} rows at offset {offset}")
            yield from batch
            if len(batch) < self.batch_size:
                return
            offset += len(batch)

    def rows_for_ticket(self, entity: str, ticket_id: Any) -> List[Dict[str, Any]]:
        """Child rows (channels, roles, users, messages) of one ticket"""
        quote = self.adapter.quote_identifier
        sql = (f"SELECT * FROM {quote(self.table_name(entity))} "
               f"WHERE {quote('ticket')} = {self.adapter.placeholder} "
               f"ORDER BY {quote('createdAt')}")
        return self._select(sql, (ticket_id,))

    def channels_for(self, ticket_id: Any) -> List[Dict[str, Any]]:
        return self.rows_for_ticket('channel', ticket_id)

    def roles_for(self, ticket_id: Any) -> List[Dict[str, Any]]:
        return self.rows_for_ticket('role', ticket_id)

    def users_for(self, ticket_id: Any) -> List[Dict[str, Any]]:
        return self.rows_for_ticket('user', ticket_id)

    def messages_for(self, ticket_id: Any) -> List[Dict[str, Any]]:
        return self.rows_for_ticket('message', ticket_id)
