from family_ledger.models.schemas import CATEGORIES, Category, Expense, Period, Role
from family_ledger.utils.dates import format_date

PERIOD_LABELS: dict[Period, str] = {
    "today": "Today",
    "week": "This week",
    "month": "This month",
}

RULE = "────────────"
DOUBLE_RULE = "════════════"


def format_money(amount: int) -> str:
    return f"${amount:,}"


def _note_suffix(expense: Expense) -> str:
    return f" ({expense.note})" if expense.note else ""


def expense_line(expense: Expense) -> str:
    """'3/7 lunch $120 (noodles)'."""
    return (
        f"{format_date(expense.created_at)} {expense.category} "
        f"{format_money(expense.amount)}{_note_suffix(expense)}"
    )


def _by_category(expenses: list[Expense]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for e in expenses:
        totals[e.category] = totals.get(e.category, 0) + e.amount
    return totals


def expense_created_reply(amount: int, category: Category, note: str) -> str:
    parts = ["Recorded!", f"Amount: {format_money(amount)}", f"Category: {category}"]
    if note:
        parts.append(f"Note: {note}")
    return "\n".join(parts)


def amount_prompt_reply(amount: int) -> str:
    return f"Which category is {format_money(amount)} for?\nPick one below."


def amount_prompt_options(amount: int) -> list[str]:
    return [f"record {amount} {category}" for category in CATEGORIES]


def query_summary_reply(period: Period, expenses: list[Expense]) -> str:
    label = PERIOD_LABELS[period]
    if not expenses:
        return f"{label}: no expenses recorded yet 📭"

    total = sum(e.amount for e in expenses)
    lines = [f"{label} spending", RULE]
    for category, amount in _by_category(expenses).items():
        lines.append(f"{category}: {format_money(amount)}")
    lines.append(RULE)
    lines.append(f"Total: {format_money(total)} ({len(expenses)} items)")

    lines += ["", "Details:"]
    for i, e in enumerate(expenses, 1):
        lines.append(f"  #{i} {expense_line(e)}")
    lines += ["", 'Use "delete #N" or "modify #N amount" to fix an item.']
    return "\n".join(lines)


def delete_reply(expense: Expense | None, latest: bool = True) -> str:
    if expense is None:
        return "Nothing to delete."
    what = "latest item" if latest else "item"
    return (
        f"Deleted {what}: {expense.category} "
        f"{format_money(expense.amount)}{_note_suffix(expense)}"
    )


def edit_reply(before: Expense | None, after: Expense | None) -> str:
    if before is None or after is None:
        return "Nothing to modify."
    return (
        f"Updated {after.category}{_note_suffix(after)}: "
        f"{format_money(before.amount)} → {format_money(after.amount)}"
    )


def stale_reference_reply(index: int) -> str:
    return (
        f"I can't tell which item #{index} is any more.\n"
        'Send "today", "week" or "month" to list your expenses again.'
    )


def missing_record_reply(index: int) -> str:
    return f"Item #{index} no longer exists."


def stats_reply(expenses: list[Expense], category: Category | None = None) -> str:
    label = PERIOD_LABELS["month"]
    if category is not None:
        expenses = [e for e in expenses if e.category == category]
        if not expenses:
            return f"{label}: nothing recorded under {category}."
        total = sum(e.amount for e in expenses)
        average = total // len(expenses)
        return "\n".join(
            [
                f"{label} · {category}",
                RULE,
                f"Total: {format_money(total)} ({len(expenses)} items)",
                f"Average: {format_money(average)}",
                f"Largest: {format_money(max(e.amount for e in expenses))}",
            ]
        )

    if not expenses:
        return f"{label}: no expenses recorded yet 📭"

    total = sum(e.amount for e in expenses)
    totals = _by_category(expenses)
    lines = [f"{label} by category", RULE]
    for cat in CATEGORIES:
        if cat in totals:
            share = totals[cat] * 100 // total
            lines.append(f"{cat}: {format_money(totals[cat])} ({share}%)")
    lines.append(RULE)
    lines.append(f"Total: {format_money(total)} ({len(expenses)} items)")
    return "\n".join(lines)


def bind_reply(role: Role, display_name: str) -> str:
    return f'{display_name} is now bound as "{role}"'


def settle_reply(expenses: list[Expense], names: dict[str, str | None]) -> str:
    if not expenses:
        return "No unconfirmed expenses right now."

    by_user: dict[str, list[Expense]] = {}
    for e in expenses:
        by_user.setdefault(e.user_id, []).append(e)

    lines = ["Unconfirmed expenses", DOUBLE_RULE, ""]
    grand_total = 0
    for user_id, items in by_user.items():
        user_total = sum(e.amount for e in items)
        grand_total += user_total
        lines.append(f"{names.get(user_id) or 'Unknown'} ({format_money(user_total)})")
        lines.append(RULE)
        for e in items:
            lines.append(f"  {expense_line(e)}")
        lines.append("")

    lines.append(DOUBLE_RULE)
    lines.append(f"Total: {format_money(grand_total)} ({len(expenses)} items)")
    lines.append("")
    lines.append('A parent can send "confirm" to mark everything as paid.')
    return "\n".join(lines)


def confirm_reply(count: int, target_name: str | None = None) -> str:
    if count == 0:
        if target_name:
            return f"{target_name} has no unconfirmed expenses."
        return "No unconfirmed expenses right now."
    target = f" {target_name}'s" if target_name else ""
    return f"Confirmed{target} {count} expenses as paid."


def receive_reply(count: int) -> str:
    if count == 0:
        return "Nothing waiting to be received."
    return f"Marked {count} paid expenses as received. Thanks!"


def not_parent_reply() -> str:
    return 'Only a "parent" can confirm payments.\nSend "bind parent" first.'


def group_only_reply() -> str:
    return "This command only works in a group chat."


def failure_reply() -> str:
    return "Something went wrong. Please try again."


def help_reply() -> str:
    return "\n".join(
        [
            "How to use",
            RULE,
            "Record: type an amount and what it was for",
            "  e.g. 50 lunch",
            "  e.g. record 120 dinner steak",
            "",
            "List:",
            "  today → today's spending",
            "  week / this week → this week",
            "  month / this month → this month",
            "",
            "Fix:",
            "  delete → remove the latest item",
            "  delete #3 / delete lunch",
            "  modify 80 / modify #3 80 / modify lunch 80",
            "",
            "stats / stats lunch → this month by category",
            "",
            "Group chats:",
            "  bind parent / bind child → set your role",
            "  settle → list unconfirmed expenses",
            "  confirm → a parent confirms everything as paid",
            "  confirm Alex → confirm one member's expenses",
            "  received → acknowledge you got paid",
        ]
    )


def welcome_reply(is_group: bool) -> str:
    if is_group:
        return "\n".join(
            [
                "Hi everyone! I'm your expense helper.",
                "",
                "Set your role first:",
                '  send "bind parent" or "bind child"',
                "",
                'Then just start recording. Send "help" for everything else.',
            ]
        )
    return f"Welcome to Family Ledger!\n\n{help_reply()}"
