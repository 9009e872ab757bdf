"""MySQL connectivity probe."""

from contextlib import closing
from typing import List

import pymysql

from ..config.models import TargetDescriptor
from ..errors import ConnectError, QueryError
from .base import Probe, decode_names


SHOW_TABLES = "SHOW TABLES"


class MySQLProbe(Probe):
    """Probe MySQL targets with SHOW TABLES."""

    def check(self, target: TargetDescriptor) -> None:
        ssl_context = self._ssl_context(target)

        try:
            conn = pymysql.connect(
                host=target.host,
                port=target.effective_port,
                user=target.user,
                password=target.password,
                database=target.name,
                ssl=ssl_context,
                connect_timeout=self.timeout,
                read_timeout=self.timeout,
                write_timeout=self.timeout,
            )
        except pymysql.MySQLError as e:
            raise ConnectError(f"error connect: {e}") from e

        with closing(conn):
            tables = self._show_tables(conn)

        self.logger.debug(f"[{target.label}] {len(tables)} table(s)")

    def _show_tables(self, conn) -> List[str]:
        try:
            with conn.cursor() as cursor:
                cursor.execute(SHOW_TABLES)
                rows = cursor.fetchall()
        except pymysql.MySQLError as e:
            raise QueryError(f"error getting tables: query '{SHOW_TABLES}': {e}") from e

        return decode_names(rows, SHOW_TABLES)
