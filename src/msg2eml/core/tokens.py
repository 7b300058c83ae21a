"""Random tokens for MIME boundaries and calendar UIDs."""

import random
import string

_ALPHABET = string.digits + string.ascii_lowercase

default_rng = random.SystemRandom()


def random_token(rng: random.Random, length: int) -> str:
    """Return ``length`` random base36 characters drawn from ``rng``."""
    return "".join(rng.choice(_ALPHABET) for _ in range(length))
