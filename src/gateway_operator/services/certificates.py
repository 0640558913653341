"""Certificate generation for the cluster CA and DataPlane TLS secrets."""

import base64
import datetime
import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from gateway_operator.consts import CA_CERT_FILENAME, TLS_CERT_FILENAME, TLS_KEY_FILENAME

logger = logging.getLogger(__name__)

CA_COMMON_NAME = "Gateway Operator CA"
CA_VALIDITY_DAYS = 3650
CERTIFICATE_VALIDITY_DAYS = 365
# Certificates closer than this to expiry are reissued
RENEW_BEFORE = datetime.timedelta(days=30)


class CertificateAuthority:
    """A CA certificate with its private key."""

    def __init__(self, certificate, private_key):
        self.certificate = certificate
        self.private_key = private_key

    @property
    def certificate_pem(self):
        return self.certificate.public_bytes(serialization.Encoding.PEM)


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


def _private_key_pem(private_key):
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def generate_ca(common_name=CA_COMMON_NAME, days=CA_VALIDITY_DAYS):
    """Generate a self-signed ECDSA P-256 CA.

    Returns:
        tuple: (certificate PEM bytes, private key PEM bytes)
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = _utcnow()

    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=1))
        .not_valid_after(now + datetime.timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(private_key, hashes.SHA256())
    )

    return certificate.public_bytes(serialization.Encoding.PEM), _private_key_pem(
        private_key
    )


def load_certificate_authority(secret):
    """Load the CA stored in a kubernetes.io/tls secret."""
    data = secret.get("data") or {}
    if TLS_CERT_FILENAME not in data or TLS_KEY_FILENAME not in data:
        raise ValueError(
            f"Secret {secret['metadata'].get('name')} does not hold a CA certificate and key"
        )

    certificate = x509.load_pem_x509_certificate(base64.b64decode(data[TLS_CERT_FILENAME]))
    private_key = serialization.load_pem_private_key(
        base64.b64decode(data[TLS_KEY_FILENAME]), password=None
    )
    return CertificateAuthority(certificate, private_key)


def issue_certificate(ca, dns_names, days=CERTIFICATE_VALIDITY_DAYS):
    """Issue a serving/client certificate for ``dns_names`` signed by ``ca``.

    Returns:
        tuple: (certificate PEM bytes, private key PEM bytes)
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    now = _utcnow()

    certificate = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, dns_names[0])]))
        .issuer_name(ca.certificate.subject)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=1))
        .not_valid_after(now + datetime.timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
            critical=False,
        )
        .add_extension(
            x509.ExtendedKeyUsage(
                [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
            ),
            critical=False,
        )
        .sign(ca.private_key, hashes.SHA256())
    )

    return certificate.public_bytes(serialization.Encoding.PEM), _private_key_pem(
        private_key
    )


def encode(pem):
    return base64.b64encode(pem).decode("ascii")


def certificate_matches(secret, dns_name, ca):
    """Whether ``secret`` holds a valid certificate for ``dns_name`` issued by ``ca``."""
    data = secret.get("data") or {}
    for key in (TLS_CERT_FILENAME, TLS_KEY_FILENAME, CA_CERT_FILENAME):
        if not data.get(key):
            return False

    if base64.b64decode(data[CA_CERT_FILENAME]) != ca.certificate_pem:
        return False

    try:
        certificate = x509.load_pem_x509_certificate(base64.b64decode(data[TLS_CERT_FILENAME]))
        names = certificate.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value.get_values_for_type(x509.DNSName)
    except (ValueError, x509.ExtensionNotFound) as e:
        logger.debug(f"Unusable certificate in secret {secret['metadata'].get('name')}: {e}")
        return False

    if dns_name not in names:
        return False
    if certificate.issuer != ca.certificate.subject:
        return False
    return certificate.not_valid_after_utc - RENEW_BEFORE > _utcnow()
