import asyncio
import logging

from telegram.ext import Application

from src.config import settings, app_config
from src.bot.handlers.settings import get_handlers as settings_handlers
from src.bot.handlers.checkup import get_handlers as checkup_handlers
from src.bot.handlers.help import get_handlers as help_handlers
from src.metrics import start_metrics_server

logger = logging.getLogger(__name__)


async def run() -> None:
    metrics_port = app_config.get("metrics", {}).get("port", settings.metrics_port)
    start_metrics_server(metrics_port)

    app = Application.builder().token(settings.telegram_apikey).build()

    for handler in settings_handlers():
        app.add_handler(handler)
    for handler in checkup_handlers():
        app.add_handler(handler)
    for handler in help_handlers():          # LAST: fallback catches unknown commands
        app.add_handler(handler)

    async with app:
        await app.start()
        logger.info("Portfolio checkup bot starting")
        await app.updater.start_polling(drop_pending_updates=True)
        try:
            await asyncio.sleep(float("inf"))
        except (KeyboardInterrupt, asyncio.CancelledError):
            pass
        finally:
            await app.updater.stop()
            await app.stop()
