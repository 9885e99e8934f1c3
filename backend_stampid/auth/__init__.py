"""
Auth package — wallet-signed challenge messages gating profile mutations.
"""

from backend_stampid.auth.challenge import (
    ERR_ADDRESS_MISMATCH,
    ERR_DOMAIN_MISMATCH,
    ERR_EXPIRED,
    ERR_FORMAT,
    ERR_ISSUED_IN_FUTURE,
    ERR_NONCE_REUSED,
    ERR_SIGNATURE,
    ERR_TOO_OLD,
    AuthChallengeVerifier,
    AuthResult,
    ChallengeMessage,
    create_challenge_message,
    generate_nonce,
    parse_challenge_message,
    recover_signer,
)

__all__ = [
    "ERR_ADDRESS_MISMATCH",
    "ERR_DOMAIN_MISMATCH",
    "ERR_EXPIRED",
    "ERR_FORMAT",
    "ERR_ISSUED_IN_FUTURE",
    "ERR_NONCE_REUSED",
    "ERR_SIGNATURE",
    "ERR_TOO_OLD",
    "AuthChallengeVerifier",
    "AuthResult",
    "ChallengeMessage",
    "create_challenge_message",
    "generate_nonce",
    "parse_challenge_message",
    "recover_signer",
]
