from telegram import Update

from memobridge.bot import build_application
from memobridge.config import get_settings
from memobridge.logging_utils import setup_logging


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    application = build_application(settings)
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
