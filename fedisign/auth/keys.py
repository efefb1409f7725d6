"""RSA key pair management."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey,
    RSAPublicKey,
    generate_private_key,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

from fedisign.auth.errors import KeyFormatError, KeyGenerationError

logger = logging.getLogger(__name__)

MIN_KEY_BITS = 2048
PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class KeyPair:
    """An actor's RSA signing key and its public half."""

    private_key: RSAPrivateKey

    @property
    def public_key(self) -> RSAPublicKey:
        return self.private_key.public_key()

    @property
    def key_size(self) -> int:
        return self.private_key.key_size


def generate_key_pair(bits: int = MIN_KEY_BITS) -> KeyPair:
    """Generate a fresh RSA key pair.

    Raises:
        KeyGenerationError: If bits is below MIN_KEY_BITS or the backend fails
    """
    if bits < MIN_KEY_BITS:
        raise KeyGenerationError(f"Key size {bits} is below the minimum of {MIN_KEY_BITS} bits")

    try:
        private_key = generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)
    except (ValueError, OSError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"Failed to generate {bits}-bit RSA key: {e}") from e

    return KeyPair(private_key)


def _lf(pem: bytes) -> str:
    # Some verifiers reject CRLF-terminated PEM
    return pem.decode("ascii").replace("\r\n", "\n")


def serialize_public_key(key_pair: KeyPair) -> str:
    """Encode the public key as SubjectPublicKeyInfo PEM with LF line endings."""
    return public_key_to_pem(key_pair.public_key)


def public_key_to_pem(public_key: RSAPublicKey) -> str:
    pem = public_key.public_bytes(
        encoding=Encoding.PEM,
        format=PublicFormat.SubjectPublicKeyInfo,
    )
    return _lf(pem)


def serialize_private_key(key_pair: KeyPair) -> str:
    """Encode the private key as unencrypted PKCS#8 PEM with LF line endings."""
    pem = key_pair.private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    )
    return _lf(pem)


def load_private_key(data: str | bytes, password: bytes | None = None) -> KeyPair:
    """Load a PEM private key (PKCS#8 or traditional RSA).

    Raises:
        KeyFormatError: If the data is not a valid RSA private key
    """
    if isinstance(data, str):
        data = data.encode()

    try:
        private_key = load_pem_private_key(data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyFormatError(f"Invalid private key: {e}") from e

    if not isinstance(private_key, RSAPrivateKey):
        raise KeyFormatError("Only RSA private keys are supported")

    return KeyPair(private_key)


def load_public_key(data: str | bytes) -> RSAPublicKey:
    """Load a PEM public key.

    Raises:
        KeyFormatError: If the data is not a valid RSA public key
    """
    if isinstance(data, str):
        data = data.encode()

    try:
        public_key = load_pem_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyFormatError(f"Invalid public key: {e}") from e

    if not isinstance(public_key, RSAPublicKey):
        raise KeyFormatError("Only RSA public keys are supported")

    return public_key


class KeyStore:
    """Holds the local actor's key pair, persisted as PEM files."""

    def __init__(self, private_key_path: Path, public_key_path: Path):
        self.private_key_path = Path(private_key_path)
        self.public_key_path = Path(public_key_path)
        self._key_pair: KeyPair | None = None

    @property
    def loaded(self) -> bool:
        return self._key_pair is not None

    @property
    def key_pair(self) -> KeyPair:
        if self._key_pair is None:
            raise KeyFormatError(f"No key pair loaded from {self.private_key_path}")
        return self._key_pair

    @property
    def public_key_pem(self) -> str:
        return serialize_public_key(self.key_pair)

    def load(self) -> KeyPair:
        """Load the private key from disk; the public key is derived from it."""
        try:
            data = self.private_key_path.read_bytes()
        except OSError as e:
            raise KeyFormatError(f"Cannot read private key {self.private_key_path}: {e}") from e

        self._key_pair = load_private_key(data)
        logger.info(
            "Loaded %d-bit RSA key from %s", self._key_pair.key_size, self.private_key_path
        )
        return self._key_pair

    def create(self, bits: int = MIN_KEY_BITS) -> KeyPair:
        """Generate a key pair and write private.pem and public.pem."""
        key_pair = generate_key_pair(bits)

        self.private_key_path.parent.mkdir(parents=True, exist_ok=True)
        self.public_key_path.parent.mkdir(parents=True, exist_ok=True)

        # Owner-only before any key bytes land; chmod also tightens an existing file
        fd = os.open(self.private_key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.chmod(self.private_key_path, 0o600)
        # newline="\n" keeps LF endings on every platform
        with os.fdopen(fd, "w", newline="\n") as f:
            f.write(serialize_private_key(key_pair))

        with open(self.public_key_path, "w", newline="\n") as f:
            f.write(serialize_public_key(key_pair))

        self._key_pair = key_pair
        logger.info("Generated %d-bit RSA key pair at %s", bits, self.private_key_path)
        return key_pair

    def set_key_pair(self, key_pair: KeyPair) -> None:
        """Install an in-memory key pair (no disk access)."""
        self._key_pair = key_pair
