"""Keyword classifier: one chat message in, one command out.

Rules run in a fixed order and the first one that returns a command wins,
so a keyword claimed by an earlier rule is never reinterpreted later on.
A rule returns ``None`` to let the message fall through to the next one.
"""

import re
from typing import Callable

from family_ledger.models.schemas import (
    AMOUNT_MAX,
    AMOUNT_MIN,
    CATEGORIES,
    FALLBACK_CATEGORY,
    AmountOnlyCommand,
    BindCommand,
    Category,
    Command,
    ConfirmCommand,
    DeleteCommand,
    EditCommand,
    ExpenseCommand,
    Period,
    QueryCommand,
    ReceiveCommand,
    Role,
    SettleCommand,
    StatsCommand,
    UnknownCommand,
)

Rule = Callable[[str], Command | None]

UNKNOWN = UnknownCommand()

BIND_ROLES: dict[str, Role] = {
    "parent": "parent",
    "mom": "parent",
    "mum": "parent",
    "dad": "parent",
    "child": "child",
    "kid": "child",
}

PERIODS: dict[str, Period] = {
    "today": "today",
    "week": "week",
    "this week": "week",
    "month": "month",
    "this month": "month",
}

_FLAGS = re.IGNORECASE

_BIND_RE = re.compile(r"^bind\s+(.+)$", _FLAGS)
_CONFIRM_RE = re.compile(r"^confirm(?:\s+(.+))?$", _FLAGS)
_DELETE_RE = re.compile(r"^delete(?:\s+(.+))?$", _FLAGS)
_EDIT_RE = re.compile(r"^(?:modify|edit)\s+(.+)$", _FLAGS)
_STATS_RE = re.compile(r"^stats(?:\s+(.+))?$", _FLAGS)
_RECORD_RE = re.compile(r"^record\s+([0-9]+)\s*(.*)", _FLAGS)
_DIRECT_RE = re.compile(r"^([0-9]+)\s+(.*)", _FLAGS)
_NUMBER_RE = re.compile(r"^[0-9]+$")

_ORDINAL_RE = re.compile(r"^#([0-9]+)$")
_ORDINAL_AMOUNT_RE = re.compile(r"^#([0-9]+)\s+([0-9]+)$")
_TOKEN_AMOUNT_RE = re.compile(r"^(\S+)\s+([0-9]+)$")


# Ordinals longer than this can never point into a listing.
_MAX_ORDINAL_DIGITS = 18


def _amount(digits: str) -> int | None:
    significant = digits.lstrip("0") or "0"
    if len(significant) > len(str(AMOUNT_MAX)):
        return None
    amount = int(significant)
    if not AMOUNT_MIN <= amount <= AMOUNT_MAX:
        return None
    return amount


def _ordinal(digits: str) -> int | None:
    significant = digits.lstrip("0") or "0"
    if len(significant) > _MAX_ORDINAL_DIGITS:
        return None
    index = int(significant)
    return index if index >= 1 else None


def _exact_category(token: str) -> Category | None:
    token = token.lower()
    for category in CATEGORIES:
        if category == token:
            return category
    return None


def _infer_category(rest: str) -> tuple[Category, str]:
    """Pick the first declared category found in ``rest``; return it with the note."""
    for category in CATEGORIES:
        if category == FALLBACK_CATEGORY:
            continue
        match = re.search(re.escape(category), rest, re.IGNORECASE)
        if match:
            note = rest[: match.start()] + rest[match.end() :]
            return category, note.strip()
    return FALLBACK_CATEGORY, rest.strip()


def _expense(digits: str, rest: str) -> Command:
    amount = _amount(digits)
    if amount is None:
        return UNKNOWN
    category, note = _infer_category(rest.strip())
    return ExpenseCommand(amount=amount, category=category, note=note)


# ── Rules, in precedence order ──────────────────────────────────────


def _bind(text: str) -> Command | None:
    match = _BIND_RE.match(text)
    if not match:
        return None
    role = BIND_ROLES.get(match.group(1).strip().lower())
    if role is None:
        return None
    return BindCommand(role=role)


def _exact_words(text: str) -> Command | None:
    word = text.lower()
    if word in ("receive", "received"):
        return ReceiveCommand()
    if word == "settle":
        return SettleCommand()
    return None


def _confirm(text: str) -> Command | None:
    match = _CONFIRM_RE.match(text)
    if not match:
        return None
    target = (match.group(1) or "").strip()
    return ConfirmCommand(target_name=target or None)


def _query(text: str) -> Command | None:
    period = PERIODS.get(text.lower())
    if period is None:
        return None
    return QueryCommand(period=period)


def _delete(text: str) -> Command | None:
    match = _DELETE_RE.match(text)
    if not match:
        return None
    arg = (match.group(1) or "").strip()
    if not arg:
        return DeleteCommand()

    ordinal = _ORDINAL_RE.match(arg)
    if ordinal:
        index = _ordinal(ordinal.group(1))
        return DeleteCommand(index=index) if index is not None else UNKNOWN

    category = _exact_category(arg)
    if category is not None:
        return DeleteCommand(category=category)

    # Anything else after the keyword is dropped.
    return DeleteCommand()


def _edit(text: str) -> Command | None:
    match = _EDIT_RE.match(text)
    if not match:
        return None
    arg = match.group(1).strip()

    by_index = _ORDINAL_AMOUNT_RE.match(arg)
    if by_index:
        index, amount = _ordinal(by_index.group(1)), _amount(by_index.group(2))
        if index is None or amount is None:
            return UNKNOWN
        return EditCommand(amount=amount, index=index)

    by_category = _TOKEN_AMOUNT_RE.match(arg)
    if by_category:
        category = _exact_category(by_category.group(1))
        if category is not None:
            amount = _amount(by_category.group(2))
            if amount is None:
                return UNKNOWN
            return EditCommand(amount=amount, category=category)

    if _NUMBER_RE.match(arg):
        amount = _amount(arg)
        if amount is None:
            return UNKNOWN
        return EditCommand(amount=amount)

    return None


def _stats(text: str) -> Command | None:
    match = _STATS_RE.match(text)
    if not match:
        return None
    arg = (match.group(1) or "").strip()
    if arg:
        return StatsCommand(category=_exact_category(arg))
    return StatsCommand()


def _record(text: str) -> Command | None:
    match = _RECORD_RE.match(text)
    if not match:
        return None
    return _expense(match.group(1), match.group(2))


def _direct(text: str) -> Command | None:
    match = _DIRECT_RE.match(text)
    if not match:
        return None
    return _expense(match.group(1), match.group(2))


def _amount_only(text: str) -> Command | None:
    if not _NUMBER_RE.match(text):
        return None
    amount = _amount(text)
    if amount is None:
        return UNKNOWN
    return AmountOnlyCommand(amount=amount)


RULES: tuple[Rule, ...] = (
    _bind,
    _exact_words,
    _confirm,
    _query,
    _delete,
    _edit,
    _stats,
    _record,
    _direct,
    _amount_only,
)


def classify(text: str) -> Command:
    """Map a raw message to exactly one command. Never raises for any string."""
    trimmed = text.strip()
    if not trimmed:
        return UNKNOWN
    for rule in RULES:
        command = rule(trimmed)
        if command is not None:
            return command
    return UNKNOWN
