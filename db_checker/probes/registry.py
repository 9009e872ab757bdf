"""Driver selection for probes."""

import logging
from typing import Dict, Optional, Type

from ..config.models import TargetDescriptor
from ..utils.metrics import ProbeOutcome
from .base import DEFAULT_PROBE_TIMEOUT, Probe
from .mongodb_probe import MongoDBProbe
from .mysql_probe import MySQLProbe
from .postgres_probe import PostgresProbe
from .tls import FileReader


PROBES: Dict[str, Type[Probe]] = {
    "mysql": MySQLProbe,
    "postgres": PostgresProbe,
    "mongodb": MongoDBProbe,
}


class DriverProbe:
    """Probe any target by delegating to the probe for its driver."""

    def __init__(
        self,
        logger: logging.Logger,
        file_reader: Optional[FileReader] = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT
    ):
        self._probes = {
            driver: probe_class(logger, file_reader=file_reader, timeout=timeout)
            for driver, probe_class in PROBES.items()
        }

    def probe(self, target: TargetDescriptor) -> ProbeOutcome:
        return self._probes[target.driver].probe(target)

    def verify_tls(self, target: TargetDescriptor) -> None:
        self._probes[target.driver].verify_tls(target)
