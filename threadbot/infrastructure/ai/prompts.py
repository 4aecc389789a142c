"""
Prompt builders for ThreadBot.

Each function returns the full prompt text for one backend call.
"""

from typing import Optional, Sequence

from threadbot.domain.models import (
    MAX_THREAD_THEME_LENGTH,
    Message,
    Thread,
    User,
    UserInformation,
)


def _discussion(messages: Sequence[Message], numbered: bool = True) -> str:
    lines = []
    for i, msg in enumerate(messages, start=1):
        prefix = f"{i}. " if numbered else ""
        lines.append(f"{prefix}{msg.author}: {msg.text}")
    return "\n".join(lines)


def thread_classification_prompt(message: Message, threads: Sequence[Thread]) -> str:
    parts = [
        "You are a thread classification assistant. Decide whether the new message "
        "belongs to any of the existing discussion threads of this chat.",
        "",
        "## New message",
        f"From: {message.author} (@{message.username})" if message.username else f"From: {message.author}",
        f"Text: {message.text}",
        "",
        "## Existing threads",
    ]
    for i, thread in enumerate(threads, start=1):
        parts.extend([
            f"Thread {i} (ID: {thread.id})",
            f"Topic: {thread.theme}",
            f"Summary: {thread.summary}",
            "",
        ])
    parts.extend([
        "For every thread give a match probability between 0.0 and 1.0 and a short "
        "justification, using the thread ID exactly as shown.",
        "If no thread reaches 0.5, suggest a topic for a new thread of at most "
        f"{MAX_THREAD_THEME_LENGTH} characters.",
    ])
    return "\n".join(parts)


def thread_summary_prompt(messages: Sequence[Message]) -> str:
    return "\n".join([
        "Create a brief summary of the following discussion. Identify the main topic "
        "and give a concise overview.",
        "",
        "## Messages",
        _discussion(messages),
        "",
        "Provide:",
        "1. theme: the topic in 5-10 words",
        "2. summary: 2-3 sentences",
    ])


def response_analysis_prompt(
    thread: Thread,
    recent: Sequence[Message],
    message: Message,
    strategy_names: Sequence[str],
) -> str:
    return "\n".join([
        "You are a group chat assistant deciding whether a reply is needed.",
        "",
        f"Thread topic: {thread.theme}",
        f"Thread summary: {thread.summary}",
        "",
        "## Recent messages",
        _discussion(recent),
        "",
        f"New message: {message.author}: {message.text}",
        "",
        "Consider whether there is a question that needs an answer, whether the "
        "author is introducing themselves, whether a claim should be checked and "
        "whether commitments or decisions were made.",
        f"If a reply is needed, suggest one strategy from: {', '.join(strategy_names)}.",
        "Stay silent for small talk that does not need the bot.",
    ])


def general_response_prompt(thread: Thread, recent: Sequence[Message], message: Message) -> str:
    return "\n".join([
        "Generate a helpful reply that fits the discussion.",
        "",
        f"Thread: {thread.theme}",
        "",
        "## Discussion",
        _discussion(recent, numbered=False),
        "",
        f"{message.author}: {message.text}",
        "",
        "Keep it brief, friendly and professional.",
    ])


def user_information_prompt(message: Message) -> str:
    return "\n".join([
        "Extract information about the author from this introduction message.",
        "",
        "Rules:",
        "- Only extract what is explicitly mentioned",
        "- bio is 1-2 sentences at most",
        "- interests are topics they are curious about or study",
        "- hobbies are activities they do in their free time",
        "- Use an empty string and empty lists for anything not mentioned",
        "",
        f"Message from {message.author}:",
        f'"{message.text}"',
    ])


def introduction_confirmation_prompt(message: Message, info: UserInformation) -> str:
    parts = [
        "Write a warm confirmation for a user's introduction that acknowledges what "
        "they shared and welcomes them to the chat.",
        "",
        f"User: {message.author}",
        f'Original message: "{message.text}"',
    ]
    if info.bio:
        parts.append(f"Bio: {info.bio}")
    if info.interests:
        parts.append(f"Interests: {', '.join(info.interests)}")
    if info.hobbies:
        parts.append(f"Hobbies: {', '.join(info.hobbies)}")
    parts.extend([
        "",
        "Guidelines:",
        "- Mention specific interests or hobbies they named",
        "- Use their first name",
        "- At most 300 characters",
    ])
    return "\n".join(parts)


def fact_check_need_prompt(message: Message) -> str:
    return "\n".join([
        "Does the following message contain a factual claim that is worth verifying?",
        "",
        f'"{message.text}"',
    ])


def fact_check_prompt(thread: Thread, recent: Sequence[Message], message: Message) -> str:
    return "\n".join([
        "Check the factual claims in the latest message of this discussion.",
        "",
        f"Thread: {thread.theme}",
        "",
        "## Discussion",
        _discussion(recent),
        "",
        f"Claim by {message.author}: {message.text}",
        "",
        "Say whether the claim is correct, how confident you are, a short "
        "explanation and any useful context.",
    ])


def reminder_extraction_prompt(recent: Sequence[Message], message: Message) -> str:
    return "\n".join([
        "Extract commitments, tasks and deadlines from this discussion.",
        "",
        "## Discussion",
        _discussion(recent),
        "",
        f"Latest: {message.author}: {message.text}",
        "",
        "For each reminder give the person responsible, the action, the deadline as "
        "written in the chat and a priority of low, medium or high.",
        "Return an empty list when there is nothing to remember.",
    ])


def agreement_extraction_prompt(recent: Sequence[Message], message: Message) -> str:
    return "\n".join([
        "Identify agreements and decisions the participants reached.",
        "",
        "## Discussion",
        _discussion(recent),
        "",
        f"Latest: {message.author}: {message.text}",
        "",
        "For each agreement give the topic, the decision, the participants who "
        "agreed and your confidence. Return an empty list when nothing was agreed.",
    ])


def personal_question_prompt(user: Optional[User], display_name: str) -> str:
    parts = [
        f"Write one friendly, open question for {display_name} to get the group talking.",
    ]
    if user is not None:
        if user.bio:
            parts.append(f"About them: {user.bio}")
        if user.interests:
            parts.append(f"Interests: {', '.join(user.interests)}")
        if user.hobbies:
            parts.append(f"Hobbies: {', '.join(user.hobbies)}")
    parts.append("Address them by name and keep it to one or two sentences.")
    return "\n".join(parts)


def answer_detection_prompt(message: Message, recent: Sequence[Message]) -> str:
    return "\n".join([
        f"{message.author} was asked a question by the bot. Is their new message an "
        "answer to that question?",
        "",
        "## Recent messages",
        _discussion(recent),
        "",
        f"New message: {message.text}",
    ])


def answer_assessment_prompt(message: Message, recent: Sequence[Message]) -> str:
    return "\n".join([
        f"Assess {message.author}'s answer to the bot's question.",
        "",
        "## Recent messages",
        _discussion(recent),
        "",
        f"Answer: {message.text}",
        "",
        "Give a score from 0 to 10, short encouraging feedback and, if the answer "
        "invites it, one follow-up question.",
    ])
