# utils/schedule_grammar.py
"""
Grammar for schedule cells

A non-empty schedule cell is one of:
  HH:MM - HH:MM          a time range, zero-padded, hours 00-23
  HH:MM - HH:MM [X.X]    a time range with an explicit deduction in hours
  <special token>        a status such as DESCANSO or VACACIONES
Anything else is invalid.
"""

import enum
import re
from dataclasses import dataclass
from typing import Optional

# Closed vocabulary of non-time statuses allowed in a schedule cell
SPECIAL_SHIFTS = (
    'DESCANSO',
    'VACACIONES',
    'AUSENCIA',
    'SUSPENSION',
    'LIC REM',
    'LIC NO REM',
    'INC ENF',
    'INC ACC',
    'CAMBIO TURNO',
    'HORA EXT NO PROG',
    'CALAMIDAD',
)

# Novelty types recognised in the exceptions sheet
NOVEDAD_TYPES = (
    'AUSENCIA',
    'SUSPENSION',
    'LIC REM',
    'LIC NO REM',
    'INC ENF',
    'INC ACC',
    'CAMBIO TURNO',
    'HORA EXT NO PROG',
)

_HOUR = r'([01][0-9]|2[0-3])'
_MINUTE = r'([0-5][0-9])'

TIME_RANGE_RE = re.compile(rf'^{_HOUR}:{_MINUTE} - {_HOUR}:{_MINUTE}$')
TIME_RANGE_DEDUCTION_RE = re.compile(rf'^{_HOUR}:{_MINUTE} - {_HOUR}:{_MINUTE} \[(\d+(?:\.\d+)?)\]$')

# Parse-time pass only rejects cells that are clearly not schedules
PERMISSIVE_SHIFT_RE = re.compile(
    r'^\d{1,2}:\d{2} - \d{1,2}:\d{2}'
    r'(?: / \d{1,2}:\d{2} - \d{1,2}:\d{2})?'
    r'(?: ?\[\d+(?:\.\d+)?\])?$'
)

MISSING_LEADING_ZERO_RE = re.compile(r'\b[0-9]:[0-5][0-9]\b')
SINGLE_DIGIT_HOUR_RE = re.compile(r'\b(\d):(\d\d)\b')
DEDUCTION_SUFFIX_RE = re.compile(r'\s*\[(\d+(?:\.\d+)?)\]$')


class TokenKind(enum.Enum):
    TIME_RANGE = 'time_range'
    TIME_RANGE_WITH_DEDUCTION = 'time_range_with_deduction'
    SPECIAL = 'special'
    INVALID = 'invalid'


@dataclass(frozen=True)
class TimeRange:
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int

    def __str__(self):
        return (f'{self.start_hour:02d}:{self.start_minute:02d} - '
                f'{self.end_hour:02d}:{self.end_minute:02d}')


@dataclass(frozen=True)
class ShiftToken:
    kind: TokenKind
    raw: str
    time_range: Optional[TimeRange] = None
    deduction_hours: Optional[float] = None
    special: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_valid(self):
        return self.kind is not TokenKind.INVALID


def _text(value):
    if value is None:
        return ''
    return str(value).strip()


def is_special_shift(value) -> bool:
    """Case-insensitive membership in the special-token vocabulary"""
    return _text(value).upper() in SPECIAL_SHIFTS


def is_known_novedad_type(value) -> bool:
    return _text(value).upper() in NOVEDAD_TYPES


def _time_range(match) -> TimeRange:
    return TimeRange(*(int(part) for part in match.groups()[:4]))


def classify_shift(value) -> ShiftToken:
    """Classify one schedule cell against the strict grammar"""
    text = _text(value)
    if is_special_shift(text):
        return ShiftToken(TokenKind.SPECIAL, text, special=text.upper())

    match = TIME_RANGE_RE.match(text)
    if match:
        return ShiftToken(TokenKind.TIME_RANGE, text, time_range=_time_range(match))

    match = TIME_RANGE_DEDUCTION_RE.match(text)
    if match:
        return ShiftToken(
            TokenKind.TIME_RANGE_WITH_DEDUCTION,
            text,
            time_range=_time_range(match),
            deduction_hours=float(match.group(5)),
        )

    if looks_like_missing_leading_zero(text):
        reason = 'hours must have two digits'
    else:
        reason = 'not a time range or special value'
    return ShiftToken(TokenKind.INVALID, text, reason=reason)


def is_valid_shift(value) -> bool:
    return classify_shift(value).is_valid


def is_permissive_shift(value) -> bool:
    """
    Parse-time check used to reject unparseable files outright.
    Only text cells qualify; numbers and native times never do.
    """
    if not isinstance(value, str):
        return False
    text = value.strip()
    return is_special_shift(text) or bool(PERMISSIVE_SHIFT_RE.match(text))


def looks_like_missing_leading_zero(value) -> bool:
    return bool(MISSING_LEADING_ZERO_RE.search(_text(value)))


def pad_single_digit_hours(text: str) -> str:
    """Left-pad single-digit hours, keeping any trailing [X.X] deduction"""
    if is_special_shift(text):
        return text

    fixed = SINGLE_DIGIT_HOUR_RE.sub(r'0\1:\2', text)
    match = DEDUCTION_SUFFIX_RE.search(fixed)
    if match:
        fixed = f'{fixed[:match.start()]} [{match.group(1)}]'
    return fixed


def split_deduction(text: str):
    """Return (label without suffix, deduction or None)"""
    match = DEDUCTION_SUFFIX_RE.search(text)
    if not match:
        return text.strip(), None
    return text[:match.start()].strip(), float(match.group(1))
