"""Token verification state machine."""
from __future__ import annotations

from tls_sig.errors import VerificationStatus
from tls_sig.verification.verifier import VerificationResult, verify_document, verify_token

__all__ = ["VerificationResult", "VerificationStatus", "verify_document", "verify_token"]
