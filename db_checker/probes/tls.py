"""TLS trust material loading for probes."""

import ssl
from pathlib import Path
from typing import Protocol

from ..config.models import TargetDescriptor
from ..errors import SecurityConfigError


class FileReader(Protocol):
    """Source of file contents, swappable in tests."""

    def read_file(self, path: str) -> bytes:
        ...


class OsFileReader:
    """FileReader backed by the local filesystem."""

    def read_file(self, path: str) -> bytes:
        return Path(path).read_bytes()


def load_trust_bundle(target: TargetDescriptor, reader: FileReader) -> ssl.SSLContext:
    """
    Build an SSL context trusting only the target's CA bundle.

    The certificate chain is always verified. Peer hostname verification is
    off unless the target sets ``tls_verify_hostname``.

    Args:
        target: Target with TLS enabled
        reader: File reader used to fetch the CA bundle

    Returns:
        ssl.SSLContext: Context for the driver

    Raises:
        SecurityConfigError: If the bundle cannot be read or parsed
    """
    try:
        pem = reader.read_file(target.tls_ca_file)
    except OSError as e:
        raise SecurityConfigError(f"Error reading CA file {target.tls_ca_file}: {e}") from e

    try:
        context = ssl.create_default_context(cadata=pem.decode("ascii"))
    except (ssl.SSLError, ValueError) as e:
        # UnicodeDecodeError is a ValueError
        raise SecurityConfigError(f"Error appending CA cert from {target.tls_ca_file}: {e}") from e

    context.check_hostname = target.tls_verify_hostname
    return context
