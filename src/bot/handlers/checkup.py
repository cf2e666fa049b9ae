import logging
from datetime import datetime
from itertools import groupby

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler
from sqlalchemy import select

from src.db.base import async_session_factory
from src.db.models import User
from src.data.yahoo import YahooDataProvider
from src.portfolio.errors import DataUnavailableError
from src.report.engine import ReportEngine
from src.report.models import PortfolioReport

logger = logging.getLogger(__name__)
_engine = ReportEngine(YahooDataProvider())


def format_report(report: PortfolioReport) -> str:
    lines = [f"🩺 Portfolio checkup — {datetime.now().strftime('%d %b %Y %H:%M')} ({report.base_currency})"]
    if not report.rules:
        lines += ["", "All rules are switched off. Use /rules to see them."]
        return "\n".join(lines)

    for category, results in groupby(report.rules, key=lambda r: r.category):
        lines += ["", f"▸ {category}"]
        for r in results:
            icon = "✅" if r.value else "❌"
            lines.append(f"{icon} {r.name}")
            lines.append(f"   {r.evaluation}")

    passed = sum(1 for r in report.rules if r.value)
    lines += ["", f"Passed {passed}/{len(report.rules)} rules"]
    if report.value:
        lines.append(f"Value {report.value:,.2f} {report.base_currency} (invested {report.investment:,.2f})")
    if report.incomplete:
        symbols = ", ".join(e.symbol for e in report.errors)
        lines.append(
            "⚠️ Incomplete report" + (f" — no price for {symbols}" if symbols else "")
        )
    return "\n".join(lines)


async def cmd_checkup(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    tg_id = update.effective_user.id
    msg = await update.message.reply_text("⏳ Checking your portfolio...")
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.tg_id == tg_id))
        user = result.scalar_one_or_none()
        if not user:
            await msg.edit_text("Use /start first.")
            return
        try:
            report = await _engine.evaluate_all(session, user.id)
        except DataUnavailableError as e:
            logger.error(f"Checkup error tg_id={tg_id}: {e}")
            await msg.edit_text("❌ Your portfolio data is not available right now. Try again later.")
            return
    await msg.edit_text(format_report(report))


def get_handlers():
    return [
        CommandHandler("checkup", cmd_checkup),
    ]
