import logging, os, sys

from .utils.smart_logger import LogLevel, get_smart_logger


def setup_logging():
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s'))
    root.addHandler(sh)

    # Tidy / tune levels
    logging.captureWarnings(True)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    for name in (
        "live_chat",                 # whole package
        "live_chat.chat_store",      # state machine transitions
        "live_chat.routes.chat",     # endpoint decisions
        "gunicorn.error",
        "gunicorn.access",
    ):
        logging.getLogger(name).setLevel(level)

    # Smart logger verbosity follows BOT_LOG_LEVEL
    bot_level = getattr(LogLevel, os.getenv("BOT_LOG_LEVEL", "STANDARD").upper(), LogLevel.STANDARD)
    get_smart_logger("live_chat.chat_store", bot_level)
    return bot_level
