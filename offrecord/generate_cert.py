#!/usr/bin/env python3
"""Generate a self-signed certificate so the relay can serve wss://."""

from __future__ import annotations

import argparse
import datetime
import ipaddress
import logging
import sys
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .config import DEFAULT_CONFIG_DIR, get_config_path, load_config, save_config

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 365


def generate_self_signed_cert(
    cert_path: Path,
    key_path: Path,
    hostname: str = "localhost",
    validity_days: int = DEFAULT_VALIDITY_DAYS,
) -> bool:
    """Write a self-signed P-256 certificate and its private key.

    Args:
        cert_path: Where to write the PEM certificate
        key_path: Where to write the PEM private key (mode 0600)
        hostname: Hostname placed in the CN and SAN
        validity_days: Days until the certificate expires

    Returns:
        True on success, False otherwise
    """
    try:
        private_key = ec.generate_private_key(ec.SECP256R1())

        name = x509.Name(
            [
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, "offrecord relay"),
                x509.NameAttribute(NameOID.COMMON_NAME, hostname),
            ]
        )
        now = datetime.datetime.now(datetime.timezone.utc)

        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=validity_days))
            .add_extension(
                x509.SubjectAlternativeName(
                    [
                        x509.DNSName(hostname),
                        x509.DNSName("localhost"),
                        x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                    ]
                ),
                critical=False,
            )
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
            .sign(private_key, hashes.SHA256())
        )

        cert_path.parent.mkdir(parents=True, exist_ok=True)
        key_path.parent.mkdir(parents=True, exist_ok=True)

        cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        key_path.write_bytes(
            private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        key_path.chmod(0o600)

        logger.info("Generated self-signed certificate at %s", cert_path)
        logger.info("Generated private key at %s", key_path)
        return True

    except (OSError, ValueError) as e:
        logger.exception("Failed to generate certificate: %s", e)
        return False


def enable_ssl_in_config(cert_path: Path, key_path: Path, hostname: str) -> None:
    """Point the relay config at the new certificate and switch TLS on."""
    config = load_config()
    config["enable_ssl"] = True
    config["ssl_cert_path"] = str(cert_path)
    config["ssl_key_path"] = str(key_path)
    config["relay_url"] = f"wss://{hostname}:{config.get('server_port', 8084)}"
    save_config(config)


def main() -> int:
    """Main entry point for certificate generation utility."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Generate a self-signed certificate for the relay")
    parser.add_argument(
        "--cert",
        type=Path,
        default=DEFAULT_CONFIG_DIR / "cert.pem",
        help="Path to save certificate (default: ~/.offrecord/cert.pem)",
    )
    parser.add_argument(
        "--key",
        type=Path,
        default=DEFAULT_CONFIG_DIR / "key.pem",
        help="Path to save private key (default: ~/.offrecord/key.pem)",
    )
    parser.add_argument(
        "--hostname",
        default="localhost",
        help="Hostname for certificate (default: localhost)",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=DEFAULT_VALIDITY_DAYS,
        help=f"Certificate validity in days (default: {DEFAULT_VALIDITY_DAYS})",
    )
    parser.add_argument(
        "--update-config",
        action="store_true",
        help="Enable SSL in the relay config with the generated files",
    )

    args = parser.parse_args()

    if not generate_self_signed_cert(args.cert, args.key, args.hostname, args.days):
        print("\nFailed to generate certificate. Check logs for details.")
        return 1

    print(f"\nCertificate: {args.cert}")
    print(f"Private key: {args.key}")
    print(f"Valid for:   {args.days} days")
    print(f"Hostname:    {args.hostname}")

    if args.update_config:
        enable_ssl_in_config(args.cert, args.key, args.hostname)
        print(f"\nSSL enabled in {get_config_path()}")
    else:
        print("\nTo enable SSL, update your config.json:")
        print('  "enable_ssl": true,')
        print(f'  "ssl_cert_path": "{args.cert}",')
        print(f'  "ssl_key_path": "{args.key}",')
    print("\nNote: clients must trust this certificate explicitly.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
