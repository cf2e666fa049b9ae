"""Entry point: ``python checkup.py`` runs the bot,
``python checkup.py report USER_ID`` prints one user's report as JSON."""
import asyncio
import json
import logging
import sys

from loguru import logger


class _InterceptHandler(logging.Handler):
    """Route stdlib logging calls into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _setup_logging(console=sys.stdout) -> None:
    logger.remove()
    logger.add(
        console,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>: <level>{message}</level>",
        level="INFO",
        colorize=True,
    )
    logger.add(
        "checkup.log",
        rotation="10 MB",
        retention="30 days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}: {message}",
        level="DEBUG",
    )
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for noisy in ("httpx", "httpcore", "yfinance", "peewee"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def print_report(user_id: int) -> None:
    from src.data.yahoo import YahooDataProvider
    from src.db.base import async_session_factory, engine
    from src.report.engine import ReportEngine

    async with async_session_factory() as session:
        report = await ReportEngine(YahooDataProvider()).evaluate_all(session, user_id)
    await engine.dispose()
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    if len(sys.argv) == 3 and sys.argv[1] == "report":
        _setup_logging(console=sys.stderr)   # keep stdout clean for the JSON
        asyncio.run(print_report(int(sys.argv[2])))
    else:
        _setup_logging()
        from src.bot.bot import run
        asyncio.run(run())
