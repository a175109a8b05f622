"""
TodoEveryday — Telegram Bot.

Telegram is the user interface: every command maps onto one TaskEngine
operation, then renders the engine's current snapshot. No business logic
lives here.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import io
import logging
from datetime import date, datetime
from datetime import time as dt_time
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import MessageLimit
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)
from telegram.helpers import escape_markdown

from todoeveryday.config import settings
from todoeveryday.core.csv_export import export_filename
from todoeveryday.core.statistics import format_completion_time, progress_level

if TYPE_CHECKING:
    from todoeveryday.core.task_engine import TaskEngine
    from todoeveryday.data.models import Day, Task
    from todoeveryday.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)

# Fresh -> urgent, indexed by carryover badge intensity
_BADGE_STEPS = ("🟢", "🟡", "🟠", "🔴")
_PROGRESS_ICONS = {"high": "🟩", "medium": "🟧", "low": "🟥"}
_SAVE_WARNING = "\n⚠️ Couldn't write this change to disk; it may be lost on restart."


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _md(text: str) -> str:
    return escape_markdown(text, version=1)


def _engine(context: ContextTypes.DEFAULT_TYPE) -> TaskEngine:
    return context.bot_data["engine"]


def _current_day(context: ContextTypes.DEFAULT_TYPE) -> Day | None:
    """The day picked with /day, or today's day."""
    engine = _engine(context)
    selected = context.user_data.get("selected_date")
    if selected:
        day = engine.find_day(date.fromisoformat(selected))
        if day is not None:
            return day
        context.user_data.pop("selected_date", None)
    return engine.todays_day


def _parse_deadline(text: str) -> datetime | None:
    """Parse 'YYYY-MM-DD HH:MM' or 'YYYY-MM-DD' (end of that day)."""
    text = text.strip()
    for fmt in ("%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if fmt == "%Y-%m-%d":
            parsed = parsed.replace(hour=23, minute=59)
        return parsed
    return None


def _split_title_deadline(text: str) -> tuple[str, datetime | None, bool]:
    """Split '<title> @ <deadline>' into (title, deadline, deadline_ok)."""
    if " @ " not in text:
        return text.strip(), None, True
    title, _, raw = text.rpartition(" @ ")
    deadline = _parse_deadline(raw)
    return title.strip(), deadline, deadline is not None


def _carryover_badge(engine: TaskEngine, task: Task) -> str:
    """'↻' plus a colour step for carried-over unfinished tasks, else ''."""
    if task.is_completed or not engine.is_carryover_instance(task):
        return ""
    intensity = engine.carryover_badge_intensity(task)
    step = _BADGE_STEPS[round(intensity * (len(_BADGE_STEPS) - 1))]
    return f" ↻{step}"


def _render_day(engine: TaskEngine, day: Day) -> str:
    """Render a day's outline as Markdown."""
    now = engine.now()
    header = f"*{day.weekday_string}, {_md(day.date_string)}*"
    if day.is_ephemeral:
        header += " _(debug)_"
    lines = [header]
    if day.summary:
        lines.append(f"_{_md(day.summary)}_")
    lines.append("")

    entries = engine.outline(day, include_collapsed=False)
    if not entries:
        lines.append("No tasks yet. Add one with /add <title>.")
        return "\n".join(lines)

    for entry in entries:
        task = entry.task
        if task.is_completed:
            box = "✅"
        elif task.is_overdue(now):
            box = "⚠️"
        else:
            box = "⬜"
        line = f"{'    ' * entry.depth}{box} `{entry.ref}` {_md(task.title)}"
        line += _carryover_badge(engine, task)
        if task.deadline_string and not task.is_completed:
            line += f"  ⏰ {_md(task.deadline_string)}"
        if task.description:
            line += " 📝"
        hidden = len(engine.children(task))
        if hidden and not task.is_expanded:
            line += f"  ▸ {hidden} hidden"
        lines.append(line)
    return "\n".join(lines)


def _render_stats(engine: TaskEngine) -> str:
    stats = engine.statistics
    lines = [
        "*Statistics*",
        f"Tasks: {stats.total_task_groups} "
        f"({stats.total_completed_task_groups} done, {stats.total_pending_task_groups} pending)",
        f"Today: {stats.today_completed} done, {stats.today_pending} pending, "
        f"{stats.today_overdue} overdue ({stats.today_completion_rate:.0f}%)",
        f"Average time to complete: {format_completion_time(stats.average_completion_minutes)}",
        f"Average daily completion: {stats.average_daily_completion_rate:.1f}%",
    ]
    if stats.daily_completion_rates:
        lines.append("")
        lines.append("*Recent days*")
        for item in stats.daily_completion_rates[:7]:
            icon = _PROGRESS_ICONS[progress_level(item.rate)]
            lines.append(f"{icon} {item.date:%a} {item.date.isoformat()}  {item.rate:.0f}%")
    return "\n".join(lines)


async def _resolve_task(
    update: Update, context: ContextTypes.DEFAULT_TYPE, ref: str,
) -> Task | None:
    """Look up a task by outline ref in the current day, replying on failure."""
    day = _current_day(context)
    if day is None:
        await update.message.reply_text("There is no list for today. Use /day to pick one.")
        return None
    task = _engine(context).resolve_ref(day, ref)
    if task is None:
        await update.message.reply_text(f"No task `{_md(ref)}` on {_md(day.date_string)}.", parse_mode="Markdown")
    return task


def _split_message(text: str, limit: int = MessageLimit.MAX_TEXT_LENGTH) -> list[str]:
    """Split text into chunks Telegram accepts, breaking between lines.

    A single line longer than ``limit`` is cut at the limit.
    """
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current or not chunks:
        chunks.append(current)
    return chunks


async def _reply_day(update: Update, engine: TaskEngine, day: Day) -> None:
    """Send a day's outline, over several messages when it is long."""
    for chunk in _split_message(_render_day(engine, day)):
        await update.message.reply_text(chunk, parse_mode="Markdown")


async def _reply(update: Update, engine: TaskEngine, text: str) -> None:
    """Reply, warning when the engine's last save failed."""
    if engine.last_error is not None:
        text += _SAVE_WARNING
    await update.message.reply_text(text, parse_mode="Markdown")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *TodoEveryday*!\n\n"
        "Every day gets its own list, and unfinished tasks move to the next day "
        "on their own.\n"
        "• Use /today to see today's list\n"
        "• Use /add to add a task, /sub to add a sub-task\n"
        "• Use /done to tick a task off\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    lines = [
        "*Available commands:*",
        "/today — Show today's list",
        "/day <YYYY-MM-DD> — Switch to another day",
        "/days — List recent days",
        "/add <title> [@ YYYY-MM-DD HH:MM] — Add a task",
        "/sub <ref> <title> — Add a sub-task",
        "/done <ref> — Toggle completion",
        "/delete <ref> — Delete a task and its sub-tasks",
        "/rename <ref> <title> — Change a title",
        "/note <ref> <text> — Set a description",
        "/deadline <ref> <YYYY-MM-DD HH:MM|none> — Set a deadline",
        "/move <ref> <position> — Reorder a sub-task",
        "/fold <ref> — Show/hide sub-tasks",
        "/summary <text> — Set the day's summary",
        "/stats — Statistics",
        "/export — Download everything as CSV",
    ]
    if settings.DEBUG_MODE:
        lines += [
            "",
            "*Debug:*",
            "/nextday — Create the day after the newest one",
            "/prevday — Create the day before the oldest one",
            "/deleteday — Delete the current day",
        ]
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /today — show today's list."""
    context.user_data.pop("selected_date", None)
    engine = _engine(context)
    day = engine.todays_day
    if day is None:
        await update.message.reply_text("No list for today (weekend days are skipped).")
        return
    await _reply_day(update, engine, day)


@authorized_only
async def cmd_day(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /day <YYYY-MM-DD|today> — select the day other commands act on."""
    args = context.args
    if not args or args[0].lower() == "today":
        await cmd_today(update, context)
        return

    try:
        target = date.fromisoformat(args[0])
    except ValueError:
        await update.message.reply_text("Usage: /day <YYYY-MM-DD>")
        return

    engine = _engine(context)
    day = engine.find_day(target)
    if day is None:
        await update.message.reply_text(f"There is no list for {target.isoformat()}.")
        return
    context.user_data["selected_date"] = target.isoformat()
    await _reply_day(update, engine, day)


@authorized_only
async def cmd_days(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /days — recent days with their completion rate."""
    engine = _engine(context)
    if not engine.days:
        await update.message.reply_text("No days yet.")
        return

    rates = {r.date: r.rate for r in engine.statistics.daily_completion_rates}
    lines = ["*Recent days:*"]
    for day in engine.recent_days:
        marker = " ← today" if engine.todays_day is not None and day.id == engine.todays_day.id else ""
        lines.append(
            f"`{day.date.isoformat()}` {day.weekday_string}  "
            f"{rates.get(day.date, 0.0):.0f}%{marker}"
        )
    if engine.older_days:
        lines.append(f"\n…and {len(engine.older_days)} older day(s). Use /day <YYYY-MM-DD>.")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_add(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add <title> [@ YYYY-MM-DD HH:MM] — add a top-level task."""
    engine = _engine(context)
    day = _current_day(context)
    if day is None:
        await update.message.reply_text("There is no list for today. Use /day to pick one.")
        return

    title, deadline, deadline_ok = _split_title_deadline(" ".join(context.args or []))
    if not deadline_ok:
        await update.message.reply_text("Couldn't read the deadline. Use YYYY-MM-DD HH:MM.")
        return

    task = engine.add_task(day, title, deadline=deadline)
    if task is None:
        await update.message.reply_text("Usage: /add <title> [@ YYYY-MM-DD HH:MM]")
        return
    await _reply(update, engine, f"➕ Added *{_md(task.title)}*")


@authorized_only
async def cmd_sub(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /sub <ref> <title> — add a sub-task at the top of its siblings."""
    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text("Usage: /sub <ref> <title>")
        return

    parent = await _resolve_task(update, context, args[0])
    if parent is None:
        return
    engine = _engine(context)
    task = engine.add_subtask(parent, " ".join(args[1:]))
    if task is None:
        await update.message.reply_text("Usage: /sub <ref> <title>")
        return
    await _reply(update, engine, f"➕ Added *{_md(task.title)}* under {_md(parent.title)}")


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /done <ref> — toggle completion, asking about linked copies."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /done <ref>\nUse /today to see refs.")
        return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)

    if settings.SHOW_CARRYOVER_PROMPT and not task.is_completed and engine.is_carryover_instance(task):
        count = engine.linked_instance_count(task)
        keyboard = [
            [InlineKeyboardButton(f"All {count} linked", callback_data=f"linked:all:{task.id}")],
            [InlineKeyboardButton("Only this one", callback_data=f"linked:one:{task.id}")],
        ]
        await update.message.reply_text(
            f"*{_md(task.title)}* was carried over and has {count} linked copies.\n"
            "Mark all of them complete?",
            reply_markup=InlineKeyboardMarkup(keyboard),
            parse_mode="Markdown",
        )
        return

    completed = engine.toggle_completion(task, mark_all_linked=True)
    verb = "🎉 Done" if completed else "↩️ Reopened"
    await _reply(update, engine, f"{verb}: *{_md(task.title)}*")


async def _handle_linked_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle the 'all linked / only this one' buttons."""
    query = update.callback_query
    await query.answer()

    # Verify the user is authorized
    user = query.from_user
    if user is None or user.id not in settings.ALLOWED_USER_IDS:
        return

    _, scope, task_id = query.data.split(":", 2)
    engine = _engine(context)
    task = engine.find_task(task_id)
    if task is None:
        await query.edit_message_text("That task no longer exists.")
        return
    if task.is_completed:
        await query.edit_message_text(f"*{_md(task.title)}* is already done.", parse_mode="Markdown")
        return

    engine.toggle_completion(task, mark_all_linked=(scope == "all"))
    msg = f"🎉 Done: *{_md(task.title)}*"
    if scope == "all":
        msg += " (all linked copies)"
    if engine.last_error is not None:
        msg += _SAVE_WARNING
    await query.edit_message_text(msg, parse_mode="Markdown")


@authorized_only
async def cmd_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete <ref> — delete a task with its sub-tasks."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /delete <ref>")
        return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)
    engine.delete_task(task)
    await _reply(update, engine, f"🗑 Deleted *{_md(task.title)}*")


@authorized_only
async def cmd_rename(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /rename <ref> <title>."""
    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text("Usage: /rename <ref> <title>")
        return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)
    engine.update_title(task, " ".join(args[1:]))
    await _reply(update, engine, f"✏️ Renamed to *{_md(task.title)}*")


@authorized_only
async def cmd_note(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /note <ref> [text] — set or clear a task's description."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /note <ref> <text>")
        return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)
    engine.update_description(task, " ".join(args[1:]))
    if task.description:
        await _reply(update, engine, f"📝 Note saved for *{_md(task.title)}*")
    else:
        await _reply(update, engine, f"📝 Note cleared for *{_md(task.title)}*")


@authorized_only
async def cmd_deadline(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deadline <ref> <YYYY-MM-DD HH:MM|none>."""
    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text("Usage: /deadline <ref> <YYYY-MM-DD HH:MM|none>")
        return

    raw = " ".join(args[1:])
    deadline = None
    if raw.lower() != "none":
        deadline = _parse_deadline(raw)
        if deadline is None:
            await update.message.reply_text("Couldn't read the deadline. Use YYYY-MM-DD HH:MM.")
            return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)
    engine.update_deadline(task, deadline)
    if deadline is None:
        await _reply(update, engine, f"⏰ Deadline removed from *{_md(task.title)}*")
    else:
        await _reply(update, engine, f"⏰ *{_md(task.title)}* due {_md(task.deadline_string)}")


@authorized_only
async def cmd_move(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /move <ref> <position> — reorder a sub-task among its siblings."""
    args = context.args or []
    if len(args) != 2:
        await update.message.reply_text("Usage: /move <ref> <position>")
        return

    try:
        position = int(args[1])
    except ValueError:
        await update.message.reply_text("Position must be a number, e.g. /move 2.3 1")
        return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)
    parent = engine.arena.parent(task)
    if parent is None:
        await update.message.reply_text(
            "Only sub-tasks can be moved; top-level tasks are ordered by deadline."
        )
        return

    siblings = engine.children(parent)
    from_index = next(i for i, s in enumerate(siblings) if s.id == task.id)
    if not engine.move_subtask(task, from_index, position - 1):
        await update.message.reply_text(f"Position must be between 1 and {len(siblings)}.")
        return
    await _reply(update, engine, f"↕️ Moved *{_md(task.title)}* to position {position}")


@authorized_only
async def cmd_fold(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /fold <ref> — collapse or expand a task's sub-tasks."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /fold <ref>")
        return

    task = await _resolve_task(update, context, args[0])
    if task is None:
        return
    engine = _engine(context)
    engine.toggle_expansion(task)
    state = "expanded" if task.is_expanded else "collapsed"
    await _reply(update, engine, f"*{_md(task.title)}* {state}")


@authorized_only
async def cmd_summary(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /summary [text] — set or clear the current day's summary."""
    engine = _engine(context)
    day = _current_day(context)
    if day is None:
        await update.message.reply_text("There is no list for today. Use /day to pick one.")
        return
    engine.update_summary(day, " ".join(context.args or []))
    await _reply(update, engine, f"🗒 Summary updated for {_md(day.date_string)}")


@authorized_only
async def cmd_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stats — deduplicated statistics and recent completion rates."""
    await update.message.reply_text(_render_stats(_engine(context)), parse_mode="Markdown")


@authorized_only
async def cmd_export(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export — send every day as a CSV document."""
    engine = _engine(context)
    payload = engine.export_csv().encode("utf-8")
    await update.message.reply_document(
        document=io.BytesIO(payload),
        filename=export_filename(engine.now()),
        caption=f"{len(engine.arena)} task(s) across {len(engine.days)} day(s)",
    )


# ---------------------------------------------------------------------------
# Debug commands (DEBUG_MODE only)
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_nextday(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /nextday — create an ephemeral day after the newest day."""
    if not settings.DEBUG_MODE:
        return
    engine = _engine(context)
    day = engine.create_next_debug_day()
    if day is None:
        await update.message.reply_text("No day created (weekend skipped or day exists).")
        return
    context.user_data.pop("selected_date", None)
    await _reply_day(update, engine, day)


@authorized_only
async def cmd_prevday(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /prevday — create an ephemeral day before the oldest day."""
    if not settings.DEBUG_MODE:
        return
    engine = _engine(context)
    day = engine.create_previous_debug_day()
    if day is None:
        await update.message.reply_text("No day created (weekend skipped or day exists).")
        return
    await _reply(update, engine, f"Created {_md(day.date_string)} (debug)")


@authorized_only
async def cmd_deleteday(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deleteday — delete the current day and its tasks."""
    if not settings.DEBUG_MODE:
        return
    engine = _engine(context)
    day = _current_day(context)
    if day is None:
        await update.message.reply_text("No day selected.")
        return
    engine.delete_day(day)
    context.user_data.pop("selected_date", None)
    await _reply(update, engine, f"🗑 Deleted {_md(day.date_string)}")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def _local_now() -> datetime:
    """Wall-clock time in the configured zone, without tzinfo."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def create_engine() -> TaskEngine:
    """Wire the engine to SQLite and the configured completion feedback, then start it."""
    from todoeveryday.adapters.completion_feedback import create_feedback
    from todoeveryday.core.task_engine import TaskEngine
    from todoeveryday.data.db import TaskDB

    engine = TaskEngine(
        TaskDB(),
        feedback=create_feedback(settings.COMPLETION_SOUND),
        clock=_local_now,
        create_weekend_days=settings.CREATE_WEEKEND_DAYS,
        auto_carryover=settings.AUTO_CARRYOVER,
    )
    engine.start()
    return engine


def build_app(
    engine: TaskEngine | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        engine: Started TaskEngine. Defaults to one backed by DATABASE_PATH.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if engine is None:
        engine = create_engine()

    if notifier is None:
        from todoeveryday.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["engine"] = engine
    app.bot_data["notifier"] = notifier

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("today", cmd_today))
    app.add_handler(CommandHandler("day", cmd_day))
    app.add_handler(CommandHandler("days", cmd_days))
    app.add_handler(CommandHandler("add", cmd_add))
    app.add_handler(CommandHandler("sub", cmd_sub))
    app.add_handler(CommandHandler("done", cmd_done))
    app.add_handler(CommandHandler("delete", cmd_delete))
    app.add_handler(CommandHandler("rename", cmd_rename))
    app.add_handler(CommandHandler("note", cmd_note))
    app.add_handler(CommandHandler("deadline", cmd_deadline))
    app.add_handler(CommandHandler("move", cmd_move))
    app.add_handler(CommandHandler("fold", cmd_fold))
    app.add_handler(CommandHandler("summary", cmd_summary))
    app.add_handler(CommandHandler("stats", cmd_stats))
    app.add_handler(CommandHandler("export", cmd_export))
    app.add_handler(CommandHandler("nextday", cmd_nextday))
    app.add_handler(CommandHandler("prevday", cmd_prevday))
    app.add_handler(CommandHandler("deleteday", cmd_deleteday))
    app.add_handler(CallbackQueryHandler(_handle_linked_callback, pattern=r"^linked:(all|one):"))

    # Daily rollover check, scheduled on the Telegram job queue
    _setup_rollover_check(app, engine, notifier)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_rollover_check(
    app: Application,
    engine: TaskEngine,
    notifier: NotificationPort,
) -> None:
    """Register the daily check that creates the new day after midnight."""
    from todoeveryday.core.rollover import run_rollover_check

    tz = ZoneInfo(settings.TIMEZONE)
    check_time = dt_time(
        hour=settings.ROLLOVER_CHECK_HOUR,
        minute=settings.ROLLOVER_CHECK_MINUTE,
        tzinfo=tz,
    )

    async def _rollover_job_callback(context: ContextTypes.DEFAULT_TYPE) -> None:
        await run_rollover_check(engine, notifier, settings.ALLOWED_USER_IDS)

    app.job_queue.run_daily(
        _rollover_job_callback,
        time=check_time,
        name="rollover_check",
    )

    logger.info(
        "Rollover check scheduled at %02d:%02d %s",
        settings.ROLLOVER_CHECK_HOUR,
        settings.ROLLOVER_CHECK_MINUTE,
        settings.TIMEZONE,
    )


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting TodoEveryday bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
