"""Slash-command triggers and the directive templates they apply."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from codehelper.prompts import (
    BEST_PRACTICES_TEMPLATE,
    DEBUG_TEMPLATE,
    EXPLAIN_TEMPLATE,
    REVIEW_TEMPLATE,
)

HELP = "/help"
REVIEW = "/review"
DEBUG = "/debug"
EXPLAIN = "/explain"
BEST_PRACTICES = "/best-practices"
CLEAR = "/clear"
RESET = "/reset"

# Priority order for dispatch; first match wins.
COMMAND_TRIGGERS: tuple[str, ...] = (HELP, REVIEW, DEBUG, EXPLAIN, BEST_PRACTICES, CLEAR, RESET)


@dataclass(frozen=True)
class PromptCommand:
    """A command that wraps its argument in a directive and runs an exchange."""

    trigger: str
    label: str
    template: str
    missing_argument_reply: str

    def wrap(self, argument: str) -> str:
        return self.template.format(argument=argument)

    def format_reply(self, reply: str) -> str:
        return f"{self.label}\n\n{reply}"


PROMPT_COMMANDS: dict[str, PromptCommand] = {
    REVIEW: PromptCommand(
        trigger=REVIEW,
        label="🔍 **Code Review:**",
        template=REVIEW_TEMPLATE,
        missing_argument_reply="Please paste your code after the /review command for me to review!",
    ),
    DEBUG: PromptCommand(
        trigger=DEBUG,
        label="🐛 **Debug Help:**",
        template=DEBUG_TEMPLATE,
        missing_argument_reply="Please describe your bug or paste the error message after the /debug command!",
    ),
    EXPLAIN: PromptCommand(
        trigger=EXPLAIN,
        label="📚 **Explanation:**",
        template=EXPLAIN_TEMPLATE,
        missing_argument_reply="Please tell me what programming concept you'd like me to explain!",
    ),
    BEST_PRACTICES: PromptCommand(
        trigger=BEST_PRACTICES,
        label="⭐ **Best Practices:**",
        template=BEST_PRACTICES_TEMPLATE,
        missing_argument_reply="Please specify the technology or programming area you want best practices for!",
    ),
}


def trigger_matcher(trigger: str) -> Callable[[str], bool]:
    """Case-sensitive prefix match of the message text against a trigger."""

    def _matches(text: str) -> bool:
        return text.lstrip().startswith(trigger)

    return _matches


def extract_argument(text: str, trigger: str) -> str:
    """Drop the first occurrence of the trigger and trim what remains."""
    return text.replace(trigger, "", 1).strip()


def normalize_bot_mention(text: str, bot_username: str | None) -> str:
    """Rewrite '/cmd@BotName rest' to '/cmd rest' for group chats."""
    if not bot_username or not text.startswith("/"):
        return text
    pattern = re.compile(rf"^(/\S+?)@{re.escape(bot_username)}(?=\s|$)", re.IGNORECASE)
    return pattern.sub(r"\1", text, count=1)
