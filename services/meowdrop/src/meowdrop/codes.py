import random
import re

# без I и O, чтобы не путать с 1 и 0
CODE_LETTERS = "ABCDEFGHJKLMNPQRSTUVWXYZ"
CODE_PATTERN = re.compile(rf"^\d{{3}}-[{CODE_LETTERS}]{{3}}$")
MIN_CODE_INPUT = 6

_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

_rng = random.SystemRandom()


def generate_share_code(rng: random.Random | None = None) -> str:
    """Код вида 928-MEW. Уникальность не проверяется."""
    rng = rng or _rng
    num = rng.randint(100, 999)
    letters = "".join(rng.choice(CODE_LETTERS) for _ in range(3))
    return f"{num}-{letters}"


def generate_id(rng: random.Random | None = None) -> str:
    rng = rng or _rng
    return "".join(rng.choice(_ID_ALPHABET) for _ in range(26))


def normalize_code(raw: str) -> str:
    return (raw or "").strip().upper()


def looks_like_code(raw: str) -> bool:
    return len(normalize_code(raw)) >= MIN_CODE_INPUT
