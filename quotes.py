import random
from typing import Optional

from models import Quote

QUOTES = (
    Quote("Thoughts are but ephemeral sculptures, carved in the marble of momentary perception.", "Vīgintī Trēs"),
    Quote("The finger pointing at the moon is not the moon.", "Zen proverb"),
    Quote("Fill your paper with the breathings of your heart.", "William Wordsworth"),
    Quote("There is no greater agony than bearing an untold story inside you.", "Maya Angelou"),
    Quote("We write to taste life twice, in the moment and in retrospect.", "Anaïs Nin"),
    Quote("Either write something worth reading or do something worth writing.", "Benjamin Franklin"),
)


def random_quote(rng: Optional[random.Random] = None) -> Quote:
    return (rng or random).choice(QUOTES)
