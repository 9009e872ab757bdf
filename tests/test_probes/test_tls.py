"""Tests for TLS trust material loading."""

import pytest
from unittest.mock import patch

from db_checker.errors import SecurityConfigError
from db_checker.probes.tls import OsFileReader, load_trust_bundle


def test_os_file_reader_reads_bytes(tmp_path):
    path = tmp_path / "ca.pem"
    path.write_bytes(b"bundle")

    assert OsFileReader().read_file(str(path)) == b"bundle"


def test_missing_ca_file_is_security_error(make_target, tmp_path):
    target = make_target(tls=True, tls_ca_file=str(tmp_path / "missing.pem"))

    with pytest.raises(SecurityConfigError, match="Error reading CA file"):
        load_trust_bundle(target, OsFileReader())


def test_garbage_ca_is_security_error(make_target, fake_file_reader):
    """Content without certificates fails to parse."""
    reader = fake_file_reader(contents=b"this is not PEM data")

    with pytest.raises(SecurityConfigError, match="Error appending CA cert"):
        load_trust_bundle(make_target(tls=True), reader)


def test_non_ascii_ca_is_security_error(make_target, fake_file_reader):
    reader = fake_file_reader(contents=b"\xff\xfe\x00binary")

    with pytest.raises(SecurityConfigError):
        load_trust_bundle(make_target(tls=True), reader)


def test_hostname_verification_disabled_by_default(make_target, fake_file_reader):
    """Chain is verified against the bundle but the peer name is not checked."""
    reader = fake_file_reader(contents=b"pem")

    with patch('db_checker.probes.tls.ssl.create_default_context') as mock_context:
        context = load_trust_bundle(make_target(tls=True), reader)

    mock_context.assert_called_once_with(cadata="pem")
    assert context.check_hostname is False


def test_hostname_verification_opt_in(make_target, fake_file_reader):
    reader = fake_file_reader(contents=b"pem")

    with patch('db_checker.probes.tls.ssl.create_default_context'):
        context = load_trust_bundle(make_target(tls=True, tls_verify_hostname=True), reader)

    assert context.check_hostname is True
