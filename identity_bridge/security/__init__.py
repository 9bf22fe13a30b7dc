"""Signing and verification of ``IP-Signature`` messages."""

from .signature import SIGNATURE_HEADER, SignedMessage, canonical_message, decode, encode
from .signer import RequestSigner
from .verifier import REQUEST_ERRORS, WEBHOOK_ERRORS, RequestVerifier, SignatureErrorKinds

__all__ = [
    "REQUEST_ERRORS",
    "RequestSigner",
    "RequestVerifier",
    "SIGNATURE_HEADER",
    "SignatureErrorKinds",
    "SignedMessage",
    "WEBHOOK_ERRORS",
    "canonical_message",
    "decode",
    "encode",
]
