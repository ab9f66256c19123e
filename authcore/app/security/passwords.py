"""
security/passwords.py — Password hashing and verification (bcrypt).

  - hash():   bcrypt with a fresh per-call salt embedded in the output.
              Cost factor from config BCRYPT_LOG_ROUNDS (default 12).
  - verify(): bcrypt.checkpw, which compares in constant time. A malformed
              stored hash returns False instead of raising, so a corrupt row
              cannot turn a login into a 500.

PasswordHasher holds only its immutable cost factor and a dummy hash; one
instance is safely shared between threads.

bcrypt only looks at the first 72 bytes of a password. RegisterSchema caps
the password length so inputs stay below that limit.
"""

from __future__ import annotations

import bcrypt


class PasswordHasher:

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Computed once so that the first unknown-email login is not
        # measurably slower than the rest.
        self._dummy_hash = self.hash("authcore-timing-equalisation")

    def hash(self, plaintext: str) -> str:
        """Returns the bcrypt hash of `plaintext` as a UTF-8 string."""
        return bcrypt.hashpw(
            plaintext.encode("utf-8"),
            bcrypt.gensalt(rounds=self.rounds),
        ).decode("utf-8")

    def verify(self, plaintext: str, hashed: str | None) -> bool:
        """Returns True if `plaintext` matches `hashed`. Never raises."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plaintext: str) -> bool:
        """
        Burns one bcrypt check against a throwaway hash.

        Called when the login email is unknown so the response takes as long
        as a wrong-password response (no user enumeration by timing).
        Always returns False.
        """
        self.verify(plaintext, self._dummy_hash)
        return False
