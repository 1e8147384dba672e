"""
Cosmetic profile defaults: initials and colour tags for new users.
"""

import random
from typing import Optional, Sequence

from .types import COLOR_PALETTE


def derive_initials(username: str, max_length: int = 2) -> str:
    """
    Build initials from the first letter of each space-separated word.

    >>> derive_initials("ada lovelace")
    'AL'
    >>> derive_initials("bob")
    'B'
    """
    letters = [word[0] for word in username.split(" ") if word]
    return "".join(letters).upper()[:max_length]


def pick_color(
    rng: Optional[random.Random] = None,
    palette: Sequence[str] = COLOR_PALETTE,
) -> str:
    """Pick a colour tag from the palette."""
    chooser = rng if rng is not None else random
    return chooser.choice(list(palette))
