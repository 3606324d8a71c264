# slip_api/utils/id_handler.py

from typing import Any, Optional
import logging
import math
import random
import re
import string
import time
from decimal import Decimal, InvalidOperation

logger = logging.getLogger("slip_api.utils")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


class IDFlex:
    """Utility class for handling flexible ID and scalar types"""

    @staticmethod
    def to_string(value: Any) -> str:
        """
        Convert an ID value to its string business-key form.

        Integral floats lose their fractional part so that `7` and `7.0`
        address the same document.
        """
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, str):
            return value.strip()
        return str(value)

    @staticmethod
    def to_int(value: Any) -> Optional[int]:
        """
        Convert a value to an integer using leading-integer parsing.

        "12" -> 12, "12abc" -> 12, 12.9 -> 12, "MS-1" -> None, None -> None.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, (float, Decimal)):
            try:
                if isinstance(value, float) and not math.isfinite(value):
                    return None
                return int(value)
            except (ValueError, OverflowError, InvalidOperation):
                return None
        match = _LEADING_INT.match(str(value))
        if not match:
            return None
        return int(match.group(1))

    @staticmethod
    def to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
        """Convert a value to float, returning `default` when absent or unparseable."""
        if value is None or isinstance(value, bool):
            return default
        try:
            result = float(str(value).strip()) if isinstance(value, str) else float(value)
        except (TypeError, ValueError):
            logger.debug(f"[IDFlex] Unparseable numeric value: {value!r}")
            return default
        if not math.isfinite(result):
            return default
        return result

    @staticmethod
    def to_text(value: Any, default: str = "") -> str:
        """
        Render a scalar as contract text.

        Integral floats are rendered without a trailing ".0" (85.0 -> "85").
        """
        if value is None:
            return default
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    @staticmethod
    def synthesize(prefix: str, *parts: Any, suffix_length: int = 9) -> str:
        """
        Build a `<prefix>_<epoch ms>[_<part>...]_<random suffix>` identifier.

        Collisions between concurrent callers are improbable, not impossible.
        """
        timestamp = int(time.time() * 1000)
        suffix = "".join(random.choices(_RANDOM_ALPHABET, k=suffix_length))
        segments = [prefix, str(timestamp)] + [str(p) for p in parts] + [suffix]
        return "_".join(segments)
