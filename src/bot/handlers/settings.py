import logging
import re

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler
from sqlalchemy import select

from src.bot.audit import log_command
from src.config import settings
from src.db.base import async_session_factory
from src.db.models import User
from src.portfolio.settings import user_settings_from
from src.report.engine import RULE_CATALOG
from src.rules.base import RuleMisconfigurationError, parse_ratio

logger = logging.getLogger(__name__)

RULES_BY_KEY = {rule_cls.key: rule_cls for rule_cls in RULE_CATALOG}
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def parse_rule_args(args: list[str]) -> tuple[str, str, object]:
    """Parse ``/rule`` arguments into (rule_key, option, value).

    ``KEY on|off`` toggles the rule, ``KEY VALUE`` sets its threshold and
    ``KEY OPTION VALUE`` sets a named option. Values accept ``0.3`` or ``30%``.
    Raises ValueError with a user-facing message.
    """
    if len(args) not in (2, 3):
        raise ValueError("Usage: /rule KEY on|off  or  /rule KEY [option] value")
    key = args[0].lower()
    if key not in RULES_BY_KEY:
        raise ValueError(f"Unknown rule '{key}'. Use /rules to list them.")

    if len(args) == 2 and args[1].lower() in ("on", "off"):
        return key, "is_active", args[1].lower() == "on"

    option = "threshold" if len(args) == 2 else args[1].lower()
    if option in ("min", "max"):
        option = f"threshold_{option}"
    if option not in RULES_BY_KEY[key].default_options or option == "is_active":
        raise ValueError(f"Rule '{key}' has no option '{option}'")

    raw = args[-1].strip()
    try:
        share = parse_ratio(float(raw[:-1]) / 100 if raw.endswith("%") else raw)
    except (ValueError, RuleMisconfigurationError) as e:
        raise ValueError(f"Invalid value '{raw}': use a share like 0.3 or 30%") from e
    return key, option, share


async def _get_user(session, tg_id: int) -> User | None:
    result = await session.execute(select(User).where(User.tg_id == tg_id))
    return result.scalar_one_or_none()


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    tg_user = update.effective_user
    async with async_session_factory() as session:
        if not await _get_user(session, tg_user.id):
            session.add(User(
                tg_id=tg_user.id,
                username=tg_user.username,
                first_name=tg_user.first_name,
                base_currency=settings.default_base_currency,
            ))
            await session.commit()
    reply = (
        f"Hi {tg_user.first_name}! 🩺\n"
        "Use /checkup to run the health check on your portfolio.\n"
        "Use /currency to see or change your base currency."
    )
    await update.message.reply_text(reply)
    await log_command(update, "/start", True, "User registered or already exists")


async def cmd_currency(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Usage: /currency [ISO code]"""
    raw_args = " ".join(context.args) if context.args else ""
    async with async_session_factory() as session:
        user = await _get_user(session, update.effective_user.id)
        if not user:
            await update.message.reply_text("Use /start first.")
            return
        if not context.args:
            await update.message.reply_text(f"Base currency: {user.base_currency}")
            return

        code = context.args[0].upper()
        if not _CURRENCY_RE.match(code):
            err = f"'{context.args[0]}' is not a currency code (e.g. USD, EUR)."
            await update.message.reply_text(err)
            await log_command(update, "/currency", False, err, raw_args)
            return
        user.base_currency = code
        await session.commit()

    ok_msg = f"Base currency set to {code}"
    await update.message.reply_text(f"✅ {ok_msg}")
    await log_command(update, "/currency", True, ok_msg, raw_args)


async def cmd_rule(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Usage: /rule KEY on|off | /rule KEY [option] value"""
    raw_args = " ".join(context.args) if context.args else ""
    try:
        key, option, value = parse_rule_args(list(context.args or []))
    except ValueError as e:
        await update.message.reply_text(str(e))
        await log_command(update, "/rule", False, str(e), raw_args)
        return

    async with async_session_factory() as session:
        user = await _get_user(session, update.effective_user.id)
        if not user:
            await update.message.reply_text("Use /start first.")
            return
        current = dict(user.rule_settings or {})
        current[key] = {**current.get(key, {}), option: value}
        user.rule_settings = current   # reassign so the JSON column is flagged dirty
        await session.commit()

    ok_msg = f"{RULES_BY_KEY[key].name}: {option} = {value}"
    await update.message.reply_text(f"✅ {ok_msg}")
    await log_command(update, "/rule", True, ok_msg, raw_args)


async def cmd_rules(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    async with async_session_factory() as session:
        user = await _get_user(session, update.effective_user.id)
    if not user:
        await update.message.reply_text("Use /start first.")
        return

    user_settings = user_settings_from(user)
    lines = [f"📋 Rules ({user_settings.base_currency})", ""]
    for rule_cls in RULE_CATALOG:
        rule = rule_cls()
        rule_settings = rule.get_settings(user_settings)
        icon = "🟢" if rule_settings.is_active else "⚪"
        options = ", ".join(
            f"{name}={getattr(rule_settings, name)}"
            for name in rule.default_options
            if name != "is_active" and hasattr(rule_settings, name)
        )
        lines.append(f"{icon} {rule.name} — {rule.key}" + (f" ({options})" if options else ""))
    await update.message.reply_text("\n".join(lines))


def get_handlers():
    return [
        CommandHandler("start", cmd_start),
        CommandHandler("currency", cmd_currency),
        CommandHandler("rule", cmd_rule),
        CommandHandler("rules", cmd_rules),
    ]
