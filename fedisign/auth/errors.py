"""Error types for key handling, signing and signature verification."""


class FedisignError(Exception):
    """Base class for all fedisign errors."""


class KeyGenerationError(FedisignError):
    """Key pair could not be generated."""


class KeyFormatError(FedisignError):
    """Key material is malformed, unsupported or not loaded."""


class SigningError(FedisignError):
    """Outbound request could not be signed."""


class DeliveryError(FedisignError):
    """Remote inbox rejected a signed delivery."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class VerificationError(FedisignError):
    """Inbound request failed signature verification.

    `reason` is a stable, machine-readable label used in logs so that
    rejections can be told apart without parsing messages.
    """

    reason = "rejected"


class MalformedSignatureHeader(VerificationError):
    """Signature header is absent, incomplete or unparseable."""

    reason = "header-missing"


class KeyResolutionError(VerificationError):
    """Public key referenced by keyId could not be obtained."""

    reason = "key-unresolvable"

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class SignatureMismatch(VerificationError):
    """Signature does not match the rebuilt signing string."""

    reason = "signature-mismatch"


class DigestMismatch(VerificationError):
    """Digest header does not match the received body."""

    reason = "digest-mismatch"


class StaleTimestamp(VerificationError):
    """Date header is outside the accepted clock-skew window."""

    reason = "stale-date"
