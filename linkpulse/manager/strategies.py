from __future__ import annotations
"""
Short-code generation strategies for Linkpulse.

Provided strategies:
- RandomStrategy: `length` independent, uniformly random characters drawn
  from a fixed alphabet (default: 62 upper/lower alphanumerics)

Notes:
- Codes are not meant to be unguessable; uniqueness is enforced by the index
  with a bounded retry loop in LinkManager, not by the generator.
- At length 6 over 62 symbols there are ~5.6e10 codes, so collisions are rare
  but possible.
- The random source is injectable so tests can force collisions.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from linkpulse.config import DEFAULT_ALPHABET


class BaseStrategy(ABC):
    """Abstract base for code generation strategies."""
    @abstractmethod
    def generate(self, *, length: Optional[int] = None) -> str:
        """Return one candidate short code."""
        raise NotImplementedError


@dataclass
class RandomStrategy(BaseStrategy):
    """Random codes; rely on index-level uniqueness (lookup + retry)."""
    alphabet: str = DEFAULT_ALPHABET
    length: int = 6
    rng: random.Random = field(default_factory=random.SystemRandom)

    def __post_init__(self):
        if not self.alphabet:
            raise ValueError("alphabet must not be empty")
        if self.length < 1:
            raise ValueError("length must be positive")

    def generate(self, *, length: Optional[int] = None) -> str:
        n = self.length if length is None else length
        return "".join(self.rng.choice(self.alphabet) for _ in range(n))


def generate_short_code(length: int = 6, alphabet: str = DEFAULT_ALPHABET) -> str:
    """
    Facade for one-off code generation with the default random source.
    """
    return RandomStrategy(alphabet=alphabet, length=length).generate()
