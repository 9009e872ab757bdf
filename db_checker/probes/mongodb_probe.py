"""MongoDB connectivity probe."""

from contextlib import closing
from typing import List

import pymongo
from pymongo.errors import PyMongoError

from ..config.models import TargetDescriptor
from ..errors import ConnectError, QueryError
from .base import Probe, decode_names


class MongoDBProbe(Probe):
    """Probe MongoDB targets by listing collections of the target database."""

    def check(self, target: TargetDescriptor) -> None:
        timeout_ms = int(self.timeout * 1000)
        client_args = ()
        client_params = {
            'serverSelectionTimeoutMS': timeout_ms,
            'connectTimeoutMS': timeout_ms,
            'socketTimeoutMS': timeout_ms,
        }

        if target.tls:
            # pymongo reads the bundle itself; parse it first so bad material fails the same way
            self._ssl_context(target)

        if target.uri:
            # Auth, seed list and TLS options come from the URI; only deadlines are overridden
            client_args = (target.uri,)
        else:
            client_params['host'] = target.host
            client_params['port'] = target.effective_port

            if target.user:
                client_params['username'] = target.user
                client_params['password'] = target.password
                client_params['authSource'] = target.name

            if target.tls:
                client_params['tls'] = True
                client_params['tlsCAFile'] = target.tls_ca_file
                client_params['tlsAllowInvalidHostnames'] = not target.tls_verify_hostname

        try:
            client = pymongo.MongoClient(*client_args, **client_params)
        except PyMongoError as e:
            raise ConnectError(f"error mongodb connect to '{target.host}': {e}") from e

        with closing(client):
            try:
                client.admin.command("ping")
            except PyMongoError as e:
                raise ConnectError(f"error mongodb connect to '{target.host}': {e}") from e

            collections = self._list_collections(client, target.name)

        self.logger.debug(f"[{target.label}] {len(collections)} collection(s)")

    def _list_collections(self, client, database: str) -> List[str]:
        try:
            names = client[database].list_collection_names()
        except PyMongoError as e:
            raise QueryError(f"error list collections: {e}") from e

        return decode_names(names, "listCollections")
