"""CJK numeral conversion for season and episode labels.

Handles the small set of forms that show up in labels such as ``第二季`` or
``第十二季``: single digits, ``十``, ``十X``, ``X十`` and ``X十Y``. Anything else
falls through to a plain leading-integer parse.
"""

import re

CJK_DIGITS: dict[str, int] = {
    "一": 1,
    "二": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
    "七": 7,
    "八": 8,
    "九": 9,
    "十": 10,
    "百": 100,
    "千": 1000,
}

CJK_NUMERAL_CHARS = re.compile(r"[一二三四五六七八九十百千]")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(token: str) -> int | None:
    """Parse the leading integer of *token* ("01.5" -> 1), or None."""
    match = _LEADING_INT.match(token)
    if not match:
        return None
    return int(match.group(1))


def chinese_number_to_int(token: str) -> int | None:
    """Convert a CJK numeral token to an integer.

    Args:
        token: A numeral such as "二", "十", "十二", "二十" or a plain "12".

    Returns:
        The integer value, or None when the token is not recognised. Callers
        must treat None as "not found", never as zero.
    """
    if not token:
        return None
    if token == "十":
        return 10
    if token.startswith("十"):
        return 10 + CJK_DIGITS.get(token[1], 0)
    if token.endswith("十"):
        head = CJK_DIGITS.get(token[0])
        return head * 10 if head is not None and head < 10 else None
    if len(token) == 3 and token[1] == "十":
        tens = CJK_DIGITS.get(token[0])
        ones = CJK_DIGITS.get(token[2])
        if tens is not None and ones is not None and tens < 10 and ones < 10:
            return tens * 10 + ones
    if token in CJK_DIGITS:
        return CJK_DIGITS[token]
    return parse_int(token)


def label_to_int(token: str) -> int | None:
    """Convert a captured season/episode label that may be CJK or ASCII."""
    if CJK_NUMERAL_CHARS.search(token):
        return chinese_number_to_int(token)
    return parse_int(token)
