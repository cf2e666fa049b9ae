import logging

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler, MessageHandler, filters

logger = logging.getLogger(__name__)

# (command, args_hint, description)
# Use "" for args_hint when command takes no arguments.
COMMAND_LIST = [
    ("__header__", "", "🔑 Access"),
    ("start", "", "Register and show the welcome message"),

    ("__header__", "", "🩺 Checkup"),
    ("checkup", "", "Run every active rule against your current positions"),

    ("__header__", "", "⚙️ Settings"),
    ("currency", "[ISO]", "Show or change your base currency"),
    ("rules", "", "List rules with your thresholds"),
    ("rule", "KEY on|off", "Switch a rule on or off"),
    ("rule", "KEY [option] value", "Set a rule threshold, e.g. 0.3 or 30%"),
]


def _build_help_text() -> str:
    lines = ["🩺 Portfolio Checkup — available commands"]
    for cmd, args, desc in COMMAND_LIST:
        if cmd == "__header__":
            lines += ["", desc]
        elif args:
            lines.append(f"/{cmd} {args} — {desc}")
        else:
            lines.append(f"/{cmd} — {desc}")
    return "\n".join(lines)


_HELP_TEXT = _build_help_text()


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    await update.message.reply_text(_HELP_TEXT)


async def cmd_unknown(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    raw = update.message.text or ""
    token = raw.split()[0] if raw.split() else "unknown"
    cmd = token.split("@")[0]  # strip @botname suffix for group chats
    await update.message.reply_text(f"❓ Unknown command: {cmd}\n\n{_HELP_TEXT}")


def get_handlers():
    return [
        CommandHandler("help", cmd_help),
        MessageHandler(filters.COMMAND, cmd_unknown),
    ]
