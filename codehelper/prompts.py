"""System instruction, user-facing texts, and the outgoing prompt composer."""

from __future__ import annotations

from collections.abc import Sequence

from codehelper.memory.conversation_state import Role, Turn

CONTEXT_WINDOW_TURNS = 8

SYSTEM_INSTRUCTION = (
    "You are a Code Helper Bot. You specialize in:\n"
    "- Explaining programming concepts\n"
    "- Debugging code issues\n"
    "- Code reviews and suggestions\n"
    "- Best practices and patterns\n"
    "- Language-specific help (JavaScript, TypeScript, Python, etc.)\n"
    "- Architecture and design questions\n\n"
    "Keep responses concise but helpful. Use code blocks for code examples. "
    "Be friendly and encouraging."
)

APOLOGY_REPLY = "Sorry, I'm having trouble connecting to my AI brain right now. Please try again later."
EMPTY_TEXT_REPLY = "I didn't receive any text. Please ask me a coding question!"

HELP_TEXT = (
    "🤖 **Code Helper Bot Commands:**\n\n"
    "• **General coding questions** - Just ask me anything about programming!\n"
    "• **/review** - Paste code after this command for a code review\n"
    "• **/debug** - Describe your bug or paste error messages\n"
    "• **/explain** - Ask me to explain any programming concept\n"
    "• **/best-practices** - Get best practices for any technology\n"
    "• **/clear** - Clear the entire conversation and start fresh\n"
    "• **/reset** - Clear conversation history (lighter reset)\n"
    "• **/help** - Show this help message\n\n"
    "**Examples:**\n"
    '• "How do I handle async/await in JavaScript?"\n'
    '• "/review function add(a,b) { return a+b; }"\n'
    "• \"/debug TypeError: Cannot read property 'length' of undefined\"\n"
    '• "/explain dependency injection"'
)

WELCOME_TEXT = (
    "👋 **Welcome to Code Helper Bot!**\n\n"
    "I'm your AI-powered coding assistant, ready to help with:\n"
    "• Code reviews and debugging\n"
    "• Programming concepts and explanations\n"
    "• Best practices and architecture advice\n"
    "• Language-specific questions\n\n"
    "Type **/help** to see all available commands, or just ask me any coding question!"
)

CLEAR_CONFIRMATION = (
    "🎆 **Complete Conversation Clear!**\n\n"
    "Everything has been wiped clean:\n"
    "• All conversation history deleted\n"
    "• Message count reset to 0\n"
    "• Fresh start with no context\n\n"
    "I'm ready to help you with any coding questions!"
)

RESET_CONFIRMATION = "🔄 Conversation history cleared! Ready for a fresh start."

REVIEW_TEMPLATE = (
    "Please review this code and provide constructive feedback on:\n"
    "- Code quality and readability\n"
    "- Potential bugs or issues\n"
    "- Performance improvements\n"
    "- Best practices\n"
    "- Security considerations if applicable\n\n"
    "Code to review:\n"
    "{argument}"
)

DEBUG_TEMPLATE = (
    "Help me debug this issue. Provide step-by-step debugging suggestions "
    "and potential solutions:\n\n"
    "{argument}"
)

EXPLAIN_TEMPLATE = (
    "Please explain this programming concept in a clear, beginner-friendly way with examples:\n\n"
    "{argument}"
)

BEST_PRACTICES_TEMPLATE = "Provide best practices and recommendations for: {argument}"


def compose(
    system_instruction: str,
    history: Sequence[Turn],
    new_user_message: str,
) -> list[dict[str, str]]:
    """
    Build the chat-completions message list: the system instruction, the most
    recent CONTEXT_WINDOW_TURNS history entries in order, then the new user turn.
    Does not modify history.
    """
    window = list(history)[-CONTEXT_WINDOW_TURNS:]
    messages = [Turn(Role.SYSTEM, system_instruction).as_message()]
    messages.extend(turn.as_message() for turn in window)
    messages.append(Turn(Role.USER, new_user_message).as_message())
    return messages
