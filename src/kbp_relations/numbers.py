"""Parse numeric mention text, either digits or English number words."""

import re
from typing import Optional, Union

Number = Union[int, float]

_UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
_TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
_SCALES = {
    "hundred": 100, "thousand": 10 ** 3, "million": 10 ** 6,
    "billion": 10 ** 9, "trillion": 10 ** 12,
}
_FILLERS = {"and", "a"}

_NUMERIC = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def _parse_numeric(token: str) -> Optional[Number]:
    if not _NUMERIC.match(token):
        return None
    if "." in token:
        return float(token)
    return int(token)


def word_to_number(text: str) -> Optional[Number]:
    """Convert mention text such as ``"1,200"``, ``"2.5"`` or
    ``"twenty-five"`` to a number.

    A bare decimal such as ``"2.5"`` comes back as ``float``. Everything
    else integral is an ``int``, including scaled decimals such as
    ``"1.5 million"``. Adjacent number groups (``"nineteen eighty"``) are
    rejected rather than summed.

    Returns
    -------
    Optional[Number]
        The value, or None for empty text

    Raises
    ------
    ValueError
        If the text is not a well-formed number
    """
    if text is None:
        return None
    text = text.strip().replace(",", "")
    if not text:
        return None

    numeric = _parse_numeric(text)
    if numeric is not None:
        return numeric

    words = [w for w in re.split(r"[\s\-]+", text.lower()) if w]
    negative = False
    if words and words[0] in ("minus", "negative"):
        negative = True
        words = words[1:]

    total = 0
    current: Number = 0
    # kind of the previous word: "unit", "tens" or "scale"
    previous = None
    for word in words:
        if word in _FILLERS:
            continue
        numeric = _parse_numeric(word)
        if numeric is not None or word in _UNITS:
            value = numeric if numeric is not None else _UNITS[word]
            # "twenty five" is one group, "five six" and "twenty fifteen" are not
            if previous == "unit" or (previous == "tens" and not 0 < value < 10):
                raise ValueError(f"Not a number: {text!r}")
            current += value
            previous = "unit"
        elif word in _TENS:
            if previous in ("unit", "tens"):
                raise ValueError(f"Not a number: {text!r}")
            current += _TENS[word]
            previous = "tens"
        elif word == "hundred":
            current = (current or 1) * 100
            previous = "scale"
        elif word in _SCALES:
            total += (current or 1) * _SCALES[word]
            current = 0
            previous = "scale"
        else:
            raise ValueError(f"Not a number: {text!r}")

    if previous is None:
        raise ValueError(f"Not a number: {text!r}")

    value = total + current
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return -value if negative else value
