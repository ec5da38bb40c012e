import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from telegram.constants import ChatType

from family_ledger.bot import handler, replies


def _update(text: str, chat_type=ChatType.PRIVATE, chat_id=-100):
    update = MagicMock()
    update.effective_user.id = 42
    update.effective_user.full_name = "Alex"
    update.effective_chat.type = chat_type
    update.effective_chat.id = chat_id
    update.message.text = text
    update.message.reply_text = AsyncMock()
    return update


def test_group_id_only_for_group_chats():
    assert handler._group_id(_update("x", ChatType.PRIVATE).effective_chat) is None
    assert handler._group_id(_update("x", ChatType.GROUP, 7).effective_chat) == "7"
    assert handler._group_id(_update("x", ChatType.SUPERGROUP, 8).effective_chat) == "8"
    assert handler._group_id(None) is None


def test_keyboard_rows():
    markup = handler._keyboard(["a", "b", "c", "d", "e"])
    rows = markup.keyboard
    assert [len(row) for row in rows] == [4, 1]
    assert rows[1][0].text == "e"
    assert handler._keyboard([]) is None


def test_text_message_goes_through_dispatcher(dispatcher, repo):
    update = _update("50 lunch", ChatType.GROUP, 7)

    with patch.object(handler, "dispatcher", dispatcher):
        asyncio.run(handler.handle_message(update, MagicMock()))

    text = update.message.reply_text.await_args.args[0]
    assert text == replies.expense_created_reply(50, "lunch", "")
    expense = repo.last_expense("42")
    assert expense.group_id == "7"
    assert repo.display_name("42") == "Alex"


def test_dispatcher_failure_is_reported_not_raised():
    update = _update("50 lunch")
    broken = MagicMock()
    broken.handle_text.side_effect = RuntimeError("boom")

    with patch.object(handler, "dispatcher", broken):
        asyncio.run(handler.handle_message(update, MagicMock()))

    update.message.reply_text.assert_awaited_once_with(replies.failure_reply())


def test_bot_joining_group_is_welcomed():
    update = _update("", ChatType.GROUP)
    bot_member = MagicMock(id=999)
    update.message.new_chat_members = [MagicMock(id=1), bot_member]
    context = MagicMock()
    context.bot.id = 999

    asyncio.run(handler.handle_new_members(update, context))

    text = update.message.reply_text.await_args.args[0]
    assert text == replies.welcome_reply(True)


def test_other_members_joining_are_ignored():
    update = _update("", ChatType.GROUP)
    update.message.new_chat_members = [MagicMock(id=1)]
    context = MagicMock()
    context.bot.id = 999

    asyncio.run(handler.handle_new_members(update, context))

    update.message.reply_text.assert_not_awaited()
