"""Base probe abstract class for all database connectivity probes."""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional
import logging
import ssl
import time

from ..config.models import TargetDescriptor
from ..errors import ConnectError, QueryDecodeError, QueryError, SecurityConfigError
from ..utils.metrics import ProbeOutcome
from .tls import FileReader, OsFileReader, load_trust_bundle


DEFAULT_PROBE_TIMEOUT = 5.0


class Probe(ABC):
    """Abstract base class for all probes."""

    def __init__(
        self,
        logger: logging.Logger,
        file_reader: Optional[FileReader] = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT
    ):
        """
        Initialize base probe.

        Args:
            logger: Logger instance
            file_reader: Source of TLS trust bundles (filesystem by default)
            timeout: Deadline in seconds for connect and introspection query
        """
        self.logger = logger.getChild(self.__class__.__name__)
        self.file_reader = file_reader or OsFileReader()
        self.timeout = timeout

    @abstractmethod
    def check(self, target: TargetDescriptor) -> None:
        """
        Open a connection, run one introspection query and close it.

        Raises:
            ConnectError: Transport or authentication failure
            SecurityConfigError: TLS material unreadable or malformed
            QueryError: Query failed or deadline elapsed
            QueryDecodeError: Query result could not be read

        Note:
            Implementations must release the connection on every exit path.
        """
        pass

    def probe(self, target: TargetDescriptor) -> ProbeOutcome:
        """
        Run one timed check.

        Returns:
            ProbeOutcome: Available, or unavailable with the failure reason

        Raises:
            SecurityConfigError: TLS material is broken; not a transient failure
        """
        start_time = time.monotonic()
        try:
            self.check(target)
        except SecurityConfigError:
            raise
        except (ConnectError, QueryError, QueryDecodeError) as e:
            return ProbeOutcome.failure(e, time.monotonic() - start_time)
        return ProbeOutcome.success(time.monotonic() - start_time)

    def verify_tls(self, target: TargetDescriptor) -> None:
        """
        Load the target's TLS material without connecting.

        Raises:
            SecurityConfigError: If the CA bundle cannot be read or parsed
        """
        self._ssl_context(target)

    def _ssl_context(self, target: TargetDescriptor) -> Optional[ssl.SSLContext]:
        """Load trust material for TLS targets; None for plaintext ones."""
        if not target.tls:
            return None
        return load_trust_bundle(target, self.file_reader)


def decode_names(rows: Iterable[Any], query: str) -> List[str]:
    """
    Read the first column of every row as a name.

    Raises:
        QueryDecodeError: If a row is empty or its first column is not text
    """
    names = []
    for row in rows:
        if isinstance(row, str):
            names.append(row)
            continue
        try:
            name = row[0]
        except (TypeError, IndexError, KeyError):
            raise QueryDecodeError(f"for query '{query}', cannot read row {row!r}") from None
        if isinstance(name, bytes):
            name = name.decode("utf-8", errors="replace")
        if not isinstance(name, str):
            raise QueryDecodeError(f"for query '{query}', cannot read table name {name!r}")
        names.append(name)
    return names
