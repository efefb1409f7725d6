"""Outbound signing and delivery."""

from fedisign.client.delivery import deliver
from fedisign.client.signer import RequestSigner, build_signature_header

__all__ = ["RequestSigner", "build_signature_header", "deliver"]
