import logging
from pathlib import Path
from typing import Tuple

from telegram import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

from memobridge.blinko_client import BlinkoClient, BlinkoError, Note
from memobridge.config import Settings
from memobridge.content import attached_file_ids, message_content
from memobridge.media_group_cache import MediaGroupCache
from memobridge.notes import FileTransferError, NoteService
from memobridge.storage.token_store import TokenStore

LOGGER = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 4000

SETTINGS_KEY = "settings"
BLINKO_CLIENT_KEY = "blinko_client"
MEDIA_GROUP_CACHE_KEY = "media_group_cache"
NOTE_SERVICE_KEY = "note_service"
TOKEN_STORE_KEY = "token_store"

START_PROMPT = "Please start the bot with /start <access_token>"

ACTION_PUBLIC = "public"
ACTION_PRIVATE = "private"
ACTION_PIN = "pin"
NOTE_ACTIONS = (ACTION_PUBLIC, ACTION_PRIVATE, ACTION_PIN)

BOT_COMMANDS = [
    BotCommand("start", "Start the bot with access token"),
    BotCommand("search", "Search for the memos"),
]


class CallbackDataError(ValueError):
    """Raised for inline keyboard callback data that cannot be parsed."""


def _truncate(text: str, limit: int = MAX_MESSAGE_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def note_keyboard(note_id: int | None) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("Public", callback_data=f"{ACTION_PUBLIC} {note_id}"),
                InlineKeyboardButton("Private", callback_data=f"{ACTION_PRIVATE} {note_id}"),
                InlineKeyboardButton("Pin", callback_data=f"{ACTION_PIN} {note_id}"),
            ]
        ]
    )


def parse_callback_data(data: str | None) -> Tuple[str, int]:
    parts = (data or "").split(" ")
    if len(parts) != 2:
        raise CallbackDataError("Invalid command")
    action, raw_id = parts
    try:
        note_id = int(raw_id)
    except ValueError:
        raise CallbackDataError("Invalid memo ID") from None
    if action not in NOTE_ACTIONS:
        raise CallbackDataError("Unknown action")
    return action, note_id


def updated_text(note_id: int | None, shared: bool, pinned: bool = False) -> str:
    status = "Public" if shared else "Private"
    text = f"Memo updated as {status} with {note_id}"
    if pinned:
        text = f"{text} 📌"
    return text


def _user_token(update: Update, context: ContextTypes.DEFAULT_TYPE) -> str | None:
    user = update.effective_user
    if user is None:
        return None
    store: TokenStore = context.application.bot_data[TOKEN_STORE_KEY]
    return store.get_user_access_token(user.id)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    user = update.effective_user
    if message is None or user is None:
        return
    access_token = " ".join(context.args or []).strip()
    if not access_token:
        await message.reply_text(START_PROMPT)
        return
    LOGGER.info("/start invoked by user_id=%s", user.id)

    service: NoteService = context.application.bot_data[NOTE_SERVICE_KEY]
    try:
        user_info = await service.verify_token(access_token)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Access token rejected for user_id=%s: %s", user.id, exc)
        await message.reply_text("Invalid access token")
        return

    store: TokenStore = context.application.bot_data[TOKEN_STORE_KEY]
    store.set_user_access_token(user.id, access_token)
    await message.reply_text(f"Hello {user_info.nickname}!")


async def search(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None:
        return
    token = _user_token(update, context)
    if not token:
        await message.reply_text(START_PROMPT)
        return
    query = " ".join(context.args or []).strip()
    if not query:
        await message.reply_text("Usage: /search <query>")
        return
    LOGGER.info("/search invoked by chat_id=%s", message.chat_id)

    service: NoteService = context.application.bot_data[NOTE_SERVICE_KEY]
    try:
        results = await service.search(token, query)
    except Exception:  # noqa: BLE001
        LOGGER.exception("Failed to search memos")
        await message.reply_text("Failed to search memos")
        return

    if not results:
        await message.reply_text("No memos found for the specified search criteria.")
        return
    for note in results:
        await context.bot.send_message(
            chat_id=message.chat_id,
            text=_truncate(f"[{note.id}] {note.content}"),
        )


async def _attach_telegram_file(
    context: ContextTypes.DEFAULT_TYPE,
    service: NoteService,
    token: str,
    note: Note,
    file_id: str,
) -> None:
    try:
        telegram_file = await context.bot.get_file(file_id)
        data = bytes(await telegram_file.download_as_bytearray())
    except Exception as exc:  # noqa: BLE001
        raise FileTransferError(f"failed to get file: {exc}") from exc
    filename = Path(telegram_file.file_path or file_id).name
    await service.attach_file(token, note, data, filename)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None:
        LOGGER.debug("Ignoring update without a message")
        return
    token = _user_token(update, context)
    if not token:
        await message.reply_text(START_PROMPT)
        return

    content = message_content(message)
    file_ids = attached_file_ids(message)
    if not content and not file_ids:
        await message.reply_text("Please input memo content")
        return

    service: NoteService = context.application.bot_data[NOTE_SERVICE_KEY]
    try:
        note = await service.create_note(token, content, message.media_group_id)
    except BlinkoError as exc:
        LOGGER.error("Failed to create memo (status=%s, body=%s)", exc.status_code, exc.message)
        if exc.status_code == 401:
            await message.reply_text(START_PROMPT)
        else:
            await message.reply_text("Failed to create memo")
        return
    except Exception:  # noqa: BLE001
        LOGGER.exception("Failed to create memo")
        await message.reply_text("Failed to create memo")
        return

    for file_id in file_ids:
        try:
            await _attach_telegram_file(context, service, token, note, file_id)
        except FileTransferError as exc:
            LOGGER.warning("Attachment failed for note id=%s: %s", note.id, exc)
            await message.reply_text(f"Error: {exc}")

    await message.reply_text(
        f"Content saved as Private with {note.id}",
        disable_notification=True,
        reply_markup=note_keyboard(note.id),
    )


async def handle_note_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if query is None:
        return
    token = _user_token(update, context)
    if not token:
        await query.answer(text=START_PROMPT, show_alert=True)
        return
    try:
        action, note_id = parse_callback_data(query.data)
    except CallbackDataError as exc:
        await query.answer(text=str(exc), show_alert=True)
        return
    LOGGER.info("Note callback action=%s id=%s", action, note_id)

    service: NoteService = context.application.bot_data[NOTE_SERVICE_KEY]
    try:
        note = await service.get_note(token, note_id)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Memo %s not found: %s", note_id, exc)
        await query.answer(text=f"Memo {note_id} not found", show_alert=True)
        return

    try:
        if action == ACTION_PIN:
            note = await service.toggle_pin(token, note)
            text = updated_text(note.id, note.is_share, pinned=note.is_top)
        else:
            shared = action == ACTION_PUBLIC
            await service.set_shared(token, note.id, shared)
            text = updated_text(note.id, shared)
    except Exception:  # noqa: BLE001
        LOGGER.exception("Failed to update memo")
        await query.answer(text="Failed to update memo", show_alert=True)
        return

    try:
        await query.edit_message_text(text, reply_markup=note_keyboard(note.id))
    except BadRequest as exc:
        LOGGER.warning("Failed to edit memo status message: %s", exc)
    await query.answer(text="Memo updated")


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    LOGGER.error("Unhandled error while processing update", exc_info=context.error)


async def _post_init(application: Application) -> None:
    try:
        await application.bot.set_my_commands(BOT_COMMANDS)
    except Exception:  # noqa: BLE001
        LOGGER.exception("Failed to set bot commands")
    cache: MediaGroupCache = application.bot_data[MEDIA_GROUP_CACHE_KEY]
    cache.start()
    LOGGER.info("Bot started")


def build_application(settings: Settings) -> Application:
    LOGGER.info("Building application for server=%s", settings.server_addr)
    client = BlinkoClient(settings.server_addr, timeout=settings.blinko_timeout)
    cache = MediaGroupCache(sweep_interval=settings.cache_sweep_interval_seconds)
    service = NoteService(client, cache, group_ttl=settings.media_group_ttl_seconds)
    store = TokenStore(settings.token_db_path)

    builder = (
        Application.builder()
        .token(settings.bot_token)
        .concurrent_updates(True)
        .post_init(_post_init)
        .post_shutdown(shutdown)
    )
    if settings.bot_proxy_addr:
        proxy = settings.bot_proxy_addr.rstrip("/")
        builder = builder.base_url(f"{proxy}/bot").base_file_url(f"{proxy}/file/bot")
    application = builder.build()
    application.bot_data[SETTINGS_KEY] = settings
    application.bot_data[BLINKO_CLIENT_KEY] = client
    application.bot_data[MEDIA_GROUP_CACHE_KEY] = cache
    application.bot_data[NOTE_SERVICE_KEY] = service
    application.bot_data[TOKEN_STORE_KEY] = store

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("search", search))
    application.add_handler(CallbackQueryHandler(handle_note_callback))
    # /start and /search are matched first; any other "/..." text is saved as a note
    application.add_handler(MessageHandler(filters.UpdateType.MESSAGE, handle_message))
    application.add_error_handler(on_error)

    return application


async def shutdown(application: Application) -> None:
    LOGGER.info("Shutting down application")
    cache: MediaGroupCache | None = application.bot_data.get(MEDIA_GROUP_CACHE_KEY)
    if cache is not None:
        await cache.stop()
    client: BlinkoClient | None = application.bot_data.get(BLINKO_CLIENT_KEY)
    if client is not None:
        await client.aclose()
    store: TokenStore | None = application.bot_data.get(TOKEN_STORE_KEY)
    if store is not None:
        store.close()


__all__ = [
    "build_application",
    "note_keyboard",
    "parse_callback_data",
    "shutdown",
]
