"""
Credential value object: a stored secret plus the algorithm that produced it.

Credentials compare equal when their representations are equal; the
algorithm tag is metadata used only to pick a verification strategy.
"""

import hmac
from dataclasses import dataclass, field

from userhub.security import (
    PASSWORD_ALGORITHM,
    hash_password,
    identify_hash,
    verify_password,
)


# Tag for secrets handed over by an authentication mechanism without
# telling us how they were produced
UNKNOWN_ALGORITHM = "UNKNOWN"

# Tag for secrets kept as-is (only ever used for throwaway test principals)
PLAIN_ALGORITHM = "plain"


@dataclass(frozen=True)
class Credential:
    representation: str
    algorithm: str = field(default=UNKNOWN_ALGORITHM, compare=False)

    @classmethod
    def hash(cls, plain_password: str) -> "Credential":
        """Build an Argon2 credential from a plaintext password."""
        return cls(hash_password(plain_password), PASSWORD_ALGORITHM)

    def verify(self, plaintext: str) -> bool:
        """
        Check a plaintext input against this credential.

        - PLAIN credentials are compared in constant time.
        - Any other tag is verified through passlib, provided passlib can
          identify the representation as a hash it knows. UNKNOWN secrets
          that are not recognisable hashes never verify.
        """
        if plaintext is None:
            return False
        if self.algorithm == PLAIN_ALGORITHM:
            return hmac.compare_digest(
                self.representation.encode(), plaintext.encode()
            )
        if identify_hash(self.representation) is None:
            return False
        return verify_password(plaintext, self.representation)

    def __repr__(self) -> str:
        # Keep hashes out of logs and tracebacks
        return f"Credential(algorithm={self.algorithm!r})"
