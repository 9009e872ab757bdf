"""PostgreSQL connectivity probe."""

import select
import time
from contextlib import closing
from typing import List

import psycopg2
from psycopg2 import extensions

from ..config.models import TargetDescriptor
from ..errors import ConnectError, QueryError
from .base import Probe, decode_names


LIST_TABLES = "SELECT tablename FROM pg_catalog.pg_tables"


class PostgresProbe(Probe):
    """
    Probe PostgreSQL targets by listing catalog tables.

    The connection is opened in asynchronous mode and driven with poll(), so
    both the handshake and the query are bounded on the client side even when
    the server stops answering. statement_timeout also ends the query on the
    server.
    """

    def check(self, target: TargetDescriptor) -> None:
        conn_params = {
            'host': target.host,
            'port': target.effective_port,
            'dbname': target.name,
            'user': target.user,
            'password': target.password,
            'options': f"-c statement_timeout={int(self.timeout * 1000)}",
            'async_': True,
        }

        if target.tls:
            # libpq reads the bundle itself; parse it first so bad material fails the same way
            self._ssl_context(target)
            conn_params['sslmode'] = 'verify-full' if target.tls_verify_hostname else 'verify-ca'
            conn_params['sslrootcert'] = target.tls_ca_file

        try:
            conn = psycopg2.connect(**conn_params)
        except psycopg2.Error as e:
            raise ConnectError(f"error connect: {e}") from e

        with closing(conn):
            try:
                connected = self._wait(conn, time.monotonic() + self.timeout)
            except psycopg2.Error as e:
                raise ConnectError(f"error connect: {e}") from e
            if not connected:
                raise ConnectError(f"error connect: no answer within {self.timeout}s")

            tables = self._list_tables(conn)

        self.logger.debug(f"[{target.label}] {len(tables)} table(s)")

    def _list_tables(self, conn) -> List[str]:
        try:
            with conn.cursor() as cursor:
                cursor.execute(LIST_TABLES)
                if not self._wait(conn, time.monotonic() + self.timeout):
                    raise QueryError(
                        f"error getting tables: query '{LIST_TABLES}': no answer within {self.timeout}s"
                    )
                rows = cursor.fetchall()
        except psycopg2.Error as e:
            raise QueryError(f"error getting tables: query '{LIST_TABLES}': {e}") from e

        return decode_names(rows, LIST_TABLES)

    @staticmethod
    def _wait(conn, deadline: float) -> bool:
        """
        Drive an asynchronous connection until its pending operation completes.

        Returns:
            bool: True when done, False if the deadline passed first

        Raises:
            psycopg2.Error: If the pending operation failed
        """
        while True:
            state = conn.poll()
            if state == extensions.POLL_OK:
                return True

            if state == extensions.POLL_READ:
                readers, writers = [conn.fileno()], []
            elif state == extensions.POLL_WRITE:
                readers, writers = [], [conn.fileno()]
            else:
                raise psycopg2.OperationalError(f"bad state from poll: {state}")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            select.select(readers, writers, [], remaining)
