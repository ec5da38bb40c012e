from loguru import logger
from telegram import Chat, KeyboardButton, ReplyKeyboardMarkup, Update
from telegram.constants import ChatType
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from family_ledger.bot import replies
from family_ledger.bot.dispatcher import quick_replies
from family_ledger.config import get_settings
from family_ledger.deps import dispatcher

settings = get_settings()

BUTTONS_PER_ROW = 4
GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)


def _group_id(chat: Chat | None) -> str | None:
    """Group chats share one ledger context; private chats have none."""
    if chat is not None and chat.type in GROUP_CHAT_TYPES:
        return str(chat.id)
    return None


def _keyboard(options: list[str]) -> ReplyKeyboardMarkup | None:
    if not options:
        return None
    rows = [
        [KeyboardButton(text) for text in options[i : i + BUTTONS_PER_ROW]]
        for i in range(0, len(options), BUTTONS_PER_ROW)
    ]
    return ReplyKeyboardMarkup(rows, resize_keyboard=True)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    is_group = _group_id(update.effective_chat) is not None
    await update.message.reply_text(
        replies.welcome_reply(is_group),
        reply_markup=_keyboard(quick_replies(is_group)),
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    is_group = _group_id(update.effective_chat) is not None
    await update.message.reply_text(
        replies.help_reply(), reply_markup=_keyboard(quick_replies(is_group))
    )


async def handle_new_members(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Greet the group when the bot itself is added to it."""
    me = context.bot.id
    if any(member.id == me for member in update.message.new_chat_members):
        logger.info("Added to group {}", update.effective_chat.id)
        await update.message.reply_text(
            replies.welcome_reply(True), reply_markup=_keyboard(quick_replies(True))
        )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle incoming text messages, the main conversation entry point."""
    user = update.effective_user
    if user is None or update.message is None:
        return

    user_text = update.message.text or ""
    group_id = _group_id(update.effective_chat)
    logger.info("Telegram message from {}: {}", user.id, user_text)

    try:
        reply = dispatcher.handle_text(
            str(user.id),
            user_text,
            group_id=group_id,
            display_name=user.full_name,
        )
    except Exception as e:
        logger.error("Error handling message from {}: {}", user.id, e)
        await update.message.reply_text(replies.failure_reply())
        return

    await update.message.reply_text(
        reply.text, reply_markup=_keyboard(reply.quick_replies)
    )


def build_bot_app() -> Application:
    """Build and return the Telegram bot application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))

    app.add_handler(
        MessageHandler(filters.StatusUpdate.NEW_CHAT_MEMBERS, handle_new_members)
    )
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    return app
