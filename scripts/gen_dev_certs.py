"""
Generate a development RSA key and self-signed certificate for the SSE transport.

Usage:
  python scripts/gen_dev_certs.py --host localhost --out certs

Then point the server at them:
  DEV_MCP_SSL_CERTFILE=certs/server.crt DEV_MCP_SSL_KEYFILE=certs/server.key \
      python -m servers.mcp_server --transport sse

Clients must trust the certificate (or skip verification) to connect over https.
"""

import argparse
import ipaddress
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID


def subject_alt_names(hosts: list[str]) -> x509.SubjectAlternativeName:
    names: list[x509.GeneralName] = []
    for host in hosts:
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(host)))
        except ValueError:
            names.append(x509.DNSName(host))
    return x509.SubjectAlternativeName(names)


def generate(hosts: list[str], days: int = 365) -> tuple[bytes, bytes]:
    """Return (key_pem, cert_pem) for a certificate valid for every host."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hosts[0])])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=days))
        .add_extension(subject_alt_names(hosts), critical=False)
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return key_pem, cert.public_bytes(serialization.Encoding.PEM)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--host", action="append", default=None,
                    help="DNS name or IP; repeat for several (default localhost, 127.0.0.1)")
    ap.add_argument("--out", default="certs")
    ap.add_argument("--days", type=int, default=365)
    args = ap.parse_args()

    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    key_pem, cert_pem = generate(args.host or ["localhost", "127.0.0.1"], args.days)

    key_path = out / "server.key"
    crt_path = out / "server.crt"
    key_path.write_bytes(key_pem)
    key_path.chmod(0o600)
    crt_path.write_bytes(cert_pem)
    print(f"Wrote key: {key_path}")
    print(f"Wrote cert: {crt_path}")


if __name__ == "__main__":
    main()
