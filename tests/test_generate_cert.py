"""Tests for self-signed certificate generation."""

import json
import ssl

from cryptography import x509

from offrecord.generate_cert import enable_ssl_in_config, generate_self_signed_cert


def test_generates_loadable_cert_and_key(tmp_path):
    cert_path = tmp_path / "certs" / "cert.pem"
    key_path = tmp_path / "certs" / "key.pem"

    assert generate_self_signed_cert(cert_path, key_path, hostname="relay.test", validity_days=7)

    cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    assert "relay.test" in san.get_values_for_type(x509.DNSName)
    assert key_path.stat().st_mode & 0o777 == 0o600

    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(cert_path, key_path)


def test_enable_ssl_in_config(tmp_path, isolated_config):
    enable_ssl_in_config(tmp_path / "c.pem", tmp_path / "k.pem", "relay.test")
    config = json.loads(isolated_config.read_text())
    assert config["enable_ssl"] is True
    assert config["ssl_cert_path"] == str(tmp_path / "c.pem")
    assert config["relay_url"] == "wss://relay.test:8084"


def test_relay_ssl_context_from_config(tmp_path):
    from offrecord.main import build_ssl_context

    cert_path, key_path = tmp_path / "cert.pem", tmp_path / "key.pem"
    generate_self_signed_cert(cert_path, key_path)
    config = {"enable_ssl": True, "ssl_cert_path": str(cert_path), "ssl_key_path": str(key_path)}

    assert isinstance(build_ssl_context(config), ssl.SSLContext)
    assert build_ssl_context({**config, "enable_ssl": False}) is None
    assert build_ssl_context({**config, "ssl_key_path": str(tmp_path / "missing.pem")}) is None
