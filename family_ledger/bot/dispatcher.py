from datetime import datetime

from loguru import logger

from family_ledger.bot import replies
from family_ledger.cache.reference_cache import ReferenceCache
from family_ledger.db.repository import ExpenseRepository
from family_ledger.models.schemas import (
    AmountOnlyCommand,
    BindCommand,
    BotReply,
    Command,
    ConfirmCommand,
    DeleteCommand,
    EditCommand,
    Expense,
    ExpenseCommand,
    ExpenseSummary,
    QueryCommand,
    ReceiveCommand,
    SettleCommand,
    StatsCommand,
)
from family_ledger.parsing.classifier import classify
from family_ledger.utils.dates import period_range

PRIVATE_SHORTCUTS = ["today", "week", "month", "delete"]
GROUP_SHORTCUTS = ["settle", "confirm", "received"]


def quick_replies(is_group: bool) -> list[str]:
    items = list(PRIVATE_SHORTCUTS)
    if is_group:
        items += GROUP_SHORTCUTS
    items.append("help")
    return items


class Dispatcher:
    """Runs one classified message against the ledger and renders the reply."""

    def __init__(self, repo: ExpenseRepository, cache: ReferenceCache):
        self.repo = repo
        self.cache = cache

    def handle_text(
        self,
        user_id: str,
        text: str,
        group_id: str | None = None,
        display_name: str | None = None,
        now: datetime | None = None,
    ) -> BotReply:
        command = classify(text)
        logger.info("Message from {} classified as {}", user_id, command.kind)
        is_group = group_id is not None

        result = self._execute(command, user_id, group_id, display_name, now)
        if isinstance(result, BotReply):
            return result
        return BotReply(text=result, quick_replies=quick_replies(is_group))

    def _execute(
        self,
        command: Command,
        user_id: str,
        group_id: str | None,
        display_name: str | None,
        now: datetime | None,
    ) -> str | BotReply:
        if isinstance(command, ExpenseCommand):
            return self._record(command, user_id, group_id, display_name)
        if isinstance(command, AmountOnlyCommand):
            return BotReply(
                text=replies.amount_prompt_reply(command.amount),
                quick_replies=replies.amount_prompt_options(command.amount),
            )
        if isinstance(command, QueryCommand):
            return self._query(command, user_id, now)
        if isinstance(command, DeleteCommand):
            return self._delete(command, user_id)
        if isinstance(command, EditCommand):
            return self._edit(command, user_id)
        if isinstance(command, StatsCommand):
            return self._stats(command, user_id, now)

        # Everything below is a household command and needs a group
        if isinstance(command, (BindCommand, SettleCommand, ConfirmCommand, ReceiveCommand)):
            if group_id is None:
                return replies.group_only_reply()
            if isinstance(command, BindCommand):
                return self._bind(command, user_id, group_id, display_name)
            if isinstance(command, SettleCommand):
                return self._settle(group_id)
            if isinstance(command, ConfirmCommand):
                return self._confirm(command, user_id, group_id)
            return replies.receive_reply(self.repo.mark_received(user_id, group_id))

        return replies.help_reply()

    # ── Personal commands ───────────────────────────────────────────

    def _record(
        self,
        command: ExpenseCommand,
        user_id: str,
        group_id: str | None,
        display_name: str | None,
    ) -> str:
        expense = self.repo.create_expense(
            user_id,
            command.amount,
            command.category,
            command.note,
            group_id=group_id,
            display_name=display_name,
        )
        logger.info(
            "Recorded expense #{} for {}: {} {}",
            expense.id, user_id, command.amount, command.category,
        )
        return replies.expense_created_reply(command.amount, command.category, command.note)

    def _query(self, command: QueryCommand, user_id: str, now: datetime | None) -> str:
        start, end = period_range(command.period, now)
        expenses = self.repo.query_expenses(user_id, start, end)
        self.cache.put(user_id, [ExpenseSummary.from_expense(e) for e in expenses])
        return replies.query_summary_reply(command.period, expenses)

    def _referenced(self, user_id: str, index: int) -> Expense | str:
        """Look up the record shown as ``#index``, or the reply explaining why not."""
        summary = self.cache.resolve(user_id, index)
        if summary is None:
            logger.info("Reference #{} for {} missed the cache", index, user_id)
            return replies.stale_reference_reply(index)
        expense = self.repo.get(summary.id)
        if expense is None or expense.user_id != user_id:
            return replies.missing_record_reply(index)
        return expense

    def _delete(self, command: DeleteCommand, user_id: str) -> str:
        if command.index is None:
            deleted = self.repo.delete_last_expense(user_id, command.category)
            return replies.delete_reply(deleted, latest=True)

        target = self._referenced(user_id, command.index)
        if isinstance(target, str):
            return target
        if not self.repo.delete(target.id):
            return replies.missing_record_reply(command.index)
        logger.info("Deleted expense #{} for {}", target.id, user_id)
        return replies.delete_reply(target, latest=False)

    def _edit(self, command: EditCommand, user_id: str) -> str:
        if command.index is None:
            target = self.repo.last_expense(user_id, command.category)
            if target is None:
                return replies.edit_reply(None, None)
        else:
            target = self._referenced(user_id, command.index)
            if isinstance(target, str):
                return target

        updated = self.repo.update_amount(target.id, command.amount)
        if updated is None and command.index is not None:
            return replies.missing_record_reply(command.index)
        logger.info("Updated expense #{} for {} to {}", target.id, user_id, command.amount)
        return replies.edit_reply(target, updated)

    def _stats(self, command: StatsCommand, user_id: str, now: datetime | None) -> str:
        start, end = period_range("month", now)
        expenses = self.repo.query_expenses(user_id, start, end)
        return replies.stats_reply(expenses, command.category)

    # ── Group commands ──────────────────────────────────────────────

    def _bind(
        self, command: BindCommand, user_id: str, group_id: str, display_name: str | None
    ) -> str:
        self.repo.bind_role(user_id, group_id, command.role, display_name)
        logger.info("Bound {} as {} in {}", user_id, command.role, group_id)
        return replies.bind_reply(command.role, display_name or "You")

    def _settle(self, group_id: str) -> str:
        expenses = self.repo.get_unconfirmed(group_id)
        names = {e.user_id: self.repo.display_name(e.user_id) for e in expenses}
        return replies.settle_reply(expenses, names)

    def _confirm(self, command: ConfirmCommand, user_id: str, group_id: str) -> str:
        if not self.repo.is_parent(user_id, group_id):
            return replies.not_parent_reply()
        count = self.repo.confirm_expenses(group_id, command.target_name)
        logger.info("Confirmed {} expenses in {}", count, group_id)
        return replies.confirm_reply(count, command.target_name)


