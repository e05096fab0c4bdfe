'''
Signing of VFD payloads.

Every receipt, report and registration request must carry an RSA signature
(PKCS#1 v1.5 over a SHA-1 digest) of the exact payload bytes. The private key
comes from the certificate issued by the Revenue Authority during integration.
'''
import base64
import binascii
import logging

from Crypto.Hash import SHA1
from Crypto.PublicKey import RSA
from Crypto.Signature import pkcs1_15
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from .errors import CertificateError, SignatureVerificationError, SigningError

logger = logging.getLogger(__name__)


def _to_bytes(payload) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


def _sign(private_key: RSA.RsaKey, payload: bytes) -> bytes:
    try:
        return pkcs1_15.new(private_key).sign(SHA1.new(payload))
    except (TypeError, ValueError) as e:
        raise SigningError(f"unable to sign the payload: {e}") from e


def sign(private_key: RSA.RsaKey, payload) -> bytes:
    '''
    Sign payload and check the signature against the public half of the key.

    Returns the raw signature bytes. A signature that does not verify is never
    returned, SigningError is raised instead.
    '''
    payload = _to_bytes(payload)
    signature = _sign(private_key, payload)
    try:
        pkcs1_15.new(private_key.publickey()).verify(SHA1.new(payload), signature)
    except ValueError as e:
        raise SigningError(f"could not verify signature {e}") from e
    return signature


def sign_payload(private_key: RSA.RsaKey, payload) -> bytes:
    """Same as sign, but checks the signature the way the server sees it, base64 encoded."""
    payload = _to_bytes(payload)
    signature = _sign(private_key, payload)
    try:
        verify_signature(private_key.publickey(), payload, base64.b64encode(signature).decode("ascii"))
    except SignatureVerificationError as e:
        raise SigningError(f"invalid signature {e}") from e
    return signature


def verify_signature(public_key: RSA.RsaKey, payload, signature: str):
    '''
    Parameters:
    public_key: RSA public key of the signing certificate
    payload: bytes that were signed
    signature: base64 encoded signature

    Raises SignatureVerificationError if the signature cannot be decoded or does not match.
    '''
    try:
        raw_signature = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureVerificationError(f"could not verify signature {e}") from e

    try:
        pkcs1_15.new(public_key).verify(SHA1.new(_to_bytes(payload)), raw_signature)
    except (TypeError, ValueError) as e:
        raise SignatureVerificationError(f"could not verify signature {e}") from e


def _import_rsa_key(private_key) -> RSA.RsaKey:
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CertificateError(f"private key is not an RSA private key: {type(private_key).__name__}")
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return RSA.import_key(pem)


def load_cert_chain(cert_path: str, cert_password: str):
    '''
    Load a PKCS#12 (.pfx) file.

    Returns (private_key, certificate, ca_certificates) where private_key is
    ready to be passed to sign().
    '''
    try:
        with open(cert_path, "rb") as cert_file:
            pfx_data = cert_file.read()
    except OSError as e:
        raise CertificateError(f"could not read the certificate file: {e}") from e

    password = cert_password.encode("utf-8") if cert_password else None
    try:
        key, cert, ca_certs = pkcs12.load_key_and_certificates(pfx_data, password)
    except ValueError as e:
        raise CertificateError(f"could not decode the certificate file: {e}") from e

    private_key = _import_rsa_key(key)
    logger.info(f"Loaded certificate {cert.serial_number if cert else None} from {cert_path}")
    return private_key, cert, list(ca_certs or [])


def load_cert(cert_path: str, cert_password: str):
    """Load a PKCS#12 file and return (private_key, certificate)."""
    private_key, cert, _ = load_cert_chain(cert_path, cert_password)
    return private_key, cert


def load_private_key(key_path: str, passphrase: str = None) -> RSA.RsaKey:
    """Load a PEM encoded RSA private key."""
    try:
        with open(key_path, "rb") as key_file:
            return RSA.import_key(key_file.read(), passphrase=passphrase)
    except OSError as e:
        raise CertificateError(f"could not read the private key file: {e}") from e
    except (TypeError, ValueError, IndexError) as e:
        raise CertificateError(f"could not decode the private key file: {e}") from e
