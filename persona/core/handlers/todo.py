"""Todo handler: per-contact task lists stored in the memory database.

Commands:
    "todo buy milk", "add task: call dentist !!"
    "done 3", "undo 3", "delete 3"
    "my tasks", "progress", "clear completed"
"""

import re
import random
import sqlite3
import logging
from typing import Any, Dict, List, Optional

from ..memory import MemoryStore
from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .base import BaseHandler

logger = logging.getLogger(__name__)

RULE = "━━━━━━━━━━━━━━━━━━━━"
THIN_RULE = "─────────────────────"

MOTIVATIONS = [
    "💪 Keep pushing! Every task done is a step forward.",
    "🔥 You're on fire today! Keep that momentum going.",
    "⭐ Small progress is still progress. You got this!",
    "🚀 Productivity level: superhuman! Keep going.",
    "🎯 Focus mode activated. One task at a time.",
    "👑 You're crushing it today!",
    "💯 Consistency beats intensity. Keep it steady.",
    "🌟 Another one bites the dust! Great work.",
    "🏆 Champions don't skip tasks. Let's go!",
    "✨ You're building momentum. Don't stop now!",
]

CATEGORY_EMOJIS = {
    "work": "💼", "personal": "🏠", "health": "🏋️", "study": "📚",
    "finance": "💰", "social": "👥", "shopping": "🛒", "project": "🔧",
    "urgent": "🚨", "other": "📌",
}
PRIORITY_EMOJIS = {"high": "🔴", "medium": "🟡", "low": "🟢"}

# Checked in order, first match wins
CATEGORY_RULES = [
    ("work", re.compile(r"\b(work|office|meeting|client|project|deadline)\b", re.IGNORECASE)),
    ("health", re.compile(r"\b(gym|exercise|workout|health|doctor|medicine|walk|run)\b", re.IGNORECASE)),
    ("study", re.compile(r"\b(study|exam|homework|class|learn|read|book)\b", re.IGNORECASE)),
    ("shopping", re.compile(r"\b(buy|shop|grocery|groceries|store|order|amazon)\b", re.IGNORECASE)),
    ("finance", re.compile(r"\b(pay|bill|emi|rent|invest|bank|money|salary)\b", re.IGNORECASE)),
    ("social", re.compile(r"\b(call|meet|party|birthday|friend|family)\b", re.IGNORECASE)),
    ("personal", re.compile(r"\b(home|clean|cook|laundry|repair|fix)\b", re.IGNORECASE)),
]
_HIGH_PRIORITY = re.compile(r"!{2,}|\b(urgent|asap|critical|important|priority)\b", re.IGNORECASE)
_LOW_PRIORITY = re.compile(r"\b(low priority|low|whenever|no rush)\b", re.IGNORECASE)
_PRIORITY_WORDS = re.compile(r"!{2,}|\b(low priority|urgent|asap|critical|important|priority|no rush)\b", re.IGNORECASE)

_SHOW = re.compile(r"^(my tasks|show ?(my )?tasks|todo ?list|show ?list|list ?tasks|tasks|todos|my todos|show my todos)$", re.IGNORECASE)
_PROGRESS = re.compile(r"^(progress|my progress|todo progress|how am i doing|task stats)$", re.IGNORECASE)
_CLEAR = re.compile(r"^(clear completed|remove completed|clean ?up|clear done)$", re.IGNORECASE)
_DONE = re.compile(r"(?:done|complete|mark done|check|finish|✅)\s*#?(\d+)", re.IGNORECASE)
_UNDO = re.compile(r"(?:undo|uncheck|reopen)\s*#?(\d+)", re.IGNORECASE)
_DELETE = re.compile(r"(?:delete|remove|del)\s*(?:task\s*)?#?(\d+)", re.IGNORECASE)
_ADD = re.compile(r"(?:add task|new task|add todo|todo|task)[:\s]+(.+)", re.IGNORECASE | re.DOTALL)
_ADD_FALLBACK = re.compile(r"^(add|todo)\s+", re.IGNORECASE)

HELP_TEXT = (
    f"📋 *Todo List Commands*\n{RULE}\n\n"
    "*Add Tasks:*\n"
    "• _\"todo buy groceries\"_\n"
    "• _\"add task: call dentist\"_\n"
    "• _\"todo study for exam !!\"_ (high priority)\n\n"
    "*Manage:*\n"
    "• _\"done 3\"_ — mark #3 complete\n"
    "• _\"delete 3\"_ — remove task #3\n"
    "• _\"undo 3\"_ — reopen task #3\n\n"
    "*View:*\n"
    "• _\"my tasks\"_ — see your list\n"
    "• _\"progress\"_ — see your stats\n"
    "• _\"clear completed\"_ — clean up\n\n"
    "_Categories & priority are auto-detected!_ 🤖"
)


def detect_priority(task: str) -> str:
    if _HIGH_PRIORITY.search(task):
        return "high"
    if _LOW_PRIORITY.search(task):
        return "low"
    return "medium"


def detect_category(task: str) -> str:
    for category, pattern in CATEGORY_RULES:
        if pattern.search(task):
            return category
    return "other"


def clean_task(task: str) -> str:
    return re.sub(r"\s+", " ", _PRIORITY_WORDS.sub("", task)).strip()


def progress_bar(completed: int, total: int) -> str:
    if total == 0:
        return "▱▱▱▱▱▱▱▱▱▱ 0%"
    percentage = round(completed / total * 100)
    filled = round(percentage / 10)
    return "▰" * filled + "▱" * (10 - filled) + f" {percentage}%"


def task_stats(todos: List[Dict[str, Any]]) -> Dict[str, int]:
    pending = [t for t in todos if not t["completed"]]
    return {
        "total": len(todos),
        "completed": len(todos) - len(pending),
        "pending": len(pending),
        "high_pending": sum(1 for t in pending if t["priority"] == "high"),
        "medium_pending": sum(1 for t in pending if t["priority"] == "medium"),
        "low_pending": sum(1 for t in pending if t["priority"] == "low"),
    }


class TodoHandler(BaseHandler):
    """Task list manager."""

    tag = HandlerTag.TODO
    description = "Per-contact todo list with priorities and progress"

    def __init__(self, memory: MemoryStore, rng: Optional[random.Random] = None):
        self.memory = memory
        self.rng = rng or random.Random()

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        try:
            return self.result(self.handle(bundle.text, bundle.sender_id), is_quick_response=True)
        except sqlite3.Error as e:
            raise HandlerError(f"todo storage failed: {e}") from e

    def handle(self, text: str, sender: str) -> str:
        """Run one todo command and return the reply text."""
        msg = (text or "").strip()
        lower = msg.lower()

        if _SHOW.match(lower):
            return self.show_tasks(sender)
        if _PROGRESS.match(lower):
            return self.show_progress(sender)
        if _CLEAR.match(lower):
            return self.clear_completed(sender)

        match = _DONE.search(lower)
        if match:
            return self.complete_task(sender, int(match.group(1)))
        match = _UNDO.search(lower)
        if match:
            return self.undo_task(sender, int(match.group(1)))
        match = _DELETE.search(lower)
        if match:
            return self.delete_task(sender, int(match.group(1)))

        match = _ADD.search(msg)
        if match and match.group(1).strip():
            return self.add_task(sender, match.group(1).strip())
        if _ADD_FALLBACK.match(lower):
            task = _ADD_FALLBACK.sub("", msg).strip()
            if len(task) > 1:
                return self.add_task(sender, task)

        return HELP_TEXT

    # ── Operations ───────────────────────────────────────────────────

    def add_task(self, sender: str, task_text: str) -> str:
        priority = detect_priority(task_text)
        category = detect_category(task_text)
        task = clean_task(task_text) or task_text
        todo_id = self.memory.add_todo(sender, task, category, priority)
        stats = task_stats(self.memory.list_todos(sender))
        logger.info(f"📋 Todo #{todo_id} added for {sender} ({category}/{priority})")

        return (
            f"✅ *Task Added!*\n{RULE}\n\n"
            f"{CATEGORY_EMOJIS.get(category, '📌')} *#{todo_id}* — {task}\n"
            f"{PRIORITY_EMOJIS[priority]} Priority: {priority}\n\n"
            f"📊 Total: {stats['total']} tasks ({stats['completed']} done, {stats['pending']} pending)\n\n"
            f"_\"done {todo_id}\" to complete • \"my tasks\" to see all_"
        )

    def complete_task(self, sender: str, todo_id: int) -> str:
        task = self.memory.get_todo(sender, todo_id)
        if not task:
            return f"❌ Task #{todo_id} not found. Send \"my tasks\" to see your list."
        if task["completed"]:
            return f"✔️ Task #{todo_id} is already completed!"

        self.memory.set_todo_completed(sender, todo_id, True)
        stats = task_stats(self.memory.list_todos(sender))
        response = (
            f"✅ *Task Completed!*\n{RULE}\n\n"
            f"~{task['task']}~ ✔️\n\n"
            f"{progress_bar(stats['completed'], stats['total'])}\n"
            f"📊 {stats['completed']}/{stats['total']} tasks done\n\n"
            f"{self.rng.choice(MOTIVATIONS)}"
        )
        if stats["pending"] == 0 and stats["total"] > 0:
            response += "\n\n🎉🎉🎉 *ALL TASKS COMPLETE!* You're a legend! 🎉🎉🎉"
        return response

    def undo_task(self, sender: str, todo_id: int) -> str:
        task = self.memory.get_todo(sender, todo_id)
        if not task:
            return f"❌ Task #{todo_id} not found."
        self.memory.set_todo_completed(sender, todo_id, False)
        return f"↩️ Task #{todo_id} reopened: *{task['task']}*"

    def delete_task(self, sender: str, todo_id: int) -> str:
        task = self.memory.get_todo(sender, todo_id)
        if not task:
            return f"❌ Task #{todo_id} not found."
        self.memory.delete_todo(sender, todo_id)
        return f"🗑️ Task #{todo_id} deleted: _{task['task']}_"

    def clear_completed(self, sender: str) -> str:
        count = self.memory.clear_completed_todos(sender)
        if count == 0:
            return "📋 No completed tasks to clear."
        return f"🗑️ Cleared {count} completed task{'s' if count > 1 else ''}. Fresh start! 🧹"

    # ── Display ──────────────────────────────────────────────────────

    def show_tasks(self, sender: str) -> str:
        todos = self.memory.list_todos(sender)
        if not todos:
            return (
                f"📋 *Your Todo List*\n{RULE}\n\n_No tasks yet!_ Start adding with:\n\n"
                "• _\"todo buy groceries\"_\n• _\"add task: study for exam\"_\n• _\"todo call dentist !!\"_"
            )

        stats = task_stats(todos)
        lines = [
            f"📋 *Your Todo List*\n{RULE}\n",
            progress_bar(stats["completed"], stats["total"]),
            f"📊 {stats['completed']}/{stats['total']} done\n",
        ]
        pending = [t for t in todos if not t["completed"]]
        done = [t for t in todos if t["completed"]]
        if pending:
            lines.append(f"*⏳ Pending ({len(pending)})*")
            for t in pending:
                lines.append(
                    f"{PRIORITY_EMOJIS.get(t['priority'], '🟡')} *#{t['id']}* "
                    f"{CATEGORY_EMOJIS.get(t['category'], '📌')} {t['task']}"
                )
        if done:
            lines.append(f"\n*✅ Done ({len(done)})*")
            for t in done[:5]:
                lines.append(f"✔️ ~#{t['id']} {t['task']}~")
            if len(done) > 5:
                lines.append(f"_...and {len(done) - 5} more_")
        lines.append(f"\n{THIN_RULE}")
        lines.append("💡 _\"done #ID\" • \"delete #ID\" • \"todo [task]\"_")
        return "\n".join(lines)

    def show_progress(self, sender: str) -> str:
        todos = self.memory.list_todos(sender)
        stats = task_stats(todos)
        if stats["total"] == 0:
            return f"📊 *Your Progress*\n{RULE}\n\nNo tasks yet! Add some with:\n_\"todo [your task]\"_"

        percentage = round(stats["completed"] / stats["total"] * 100)
        lines = [
            f"📊 *Your Progress Report*\n{RULE}\n",
            progress_bar(stats["completed"], stats["total"]),
            f"🎯 *{percentage}%* complete ({stats['completed']}/{stats['total']})\n",
            "*By Category:*",
        ]
        categories: Dict[str, List[int]] = {}
        for t in todos:
            counts = categories.setdefault(t["category"], [0, 0])
            counts[0] += 1
            counts[1] += 1 if t["completed"] else 0
        for category, (total, done) in categories.items():
            lines.append(f"{CATEGORY_EMOJIS.get(category, '📌')} {category}: {done}/{total} done")

        lines.append("\n*By Priority:*")
        lines.append(f"🔴 High: {stats['high_pending']} pending")
        lines.append(f"🟡 Medium: {stats['medium_pending']} pending")
        lines.append(f"🟢 Low: {stats['low_pending']} pending")
        lines.append(f"\n{THIN_RULE}")

        if percentage == 100:
            lines.append("🎉 *PERFECT!* All tasks done! You're unstoppable! 🏆")
        elif percentage >= 75:
            lines.append(f"🔥 Almost there! Just {stats['pending']} more to go!")
        elif percentage >= 50:
            lines.append("💪 Halfway there! Keep the momentum going!")
        elif percentage >= 25:
            lines.append("⭐ Good start! Pick up the pace, you got this!")
        else:
            lines.append("🚀 Time to get things done! Start with the high-priority ones.")
        return "\n".join(lines)
