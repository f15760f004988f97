"""Prompt assembly for each tier of the cascade."""

from enum import Enum

from ..memory.models import ConversationSummary, RelevantContext, UserProfile, as_chat_message

SYSTEM_PROMPT_BASE = """You are Atrium, an institutional-grade real estate analytics assistant.

You help with multifamily development analysis, market intelligence and financial modeling
(cap rates, IRR, NPV, cash flow projections, comparables and demographics).

Guidelines:
- Be concise and professional
- Show the numbers behind any recommendation
- Say so when data is missing instead of guessing"""

DIRECT_SYSTEM_PROMPT = (
    "You are Atrium, a real estate analytics assistant. Provide concise, professional "
    "responses focused on multifamily development, market insights and financial modeling."
)

MAX_PROMPT_MEMORIES = 5
MAX_PROMPT_TOOL_RESULTS = 3
SIMPLIFIED_HISTORY = 4


class ContextLevel(Enum):
    """How much memory context a tier receives."""

    FULL = "full"
    REDUCED = "reduced"
    MINIMAL = "minimal"


def _profile_block(profile: UserProfile) -> str:
    lines = [f"- Communication style: {profile.communication_style}"]
    topics = profile.top_topics()
    if topics:
        lines.append(f"- Frequent topics: {', '.join(topics)}")
    tools = profile.top_tools(3)
    if tools:
        lines.append(f"- Frequently used tools: {', '.join(tools)}")
    if profile.total_interactions:
        lines.append(f"- Prior interactions: {profile.total_interactions}")
    return "<user_profile>\n" + "\n".join(lines) + "\n</user_profile>"


def _summary_block(summary: ConversationSummary) -> str:
    parts = []
    if summary.key_topics:
        parts.append(f"Topics: {', '.join(summary.key_topics)}")
    if summary.decisions:
        parts.append("Decisions:\n" + "\n".join(f"- {d}" for d in summary.decisions))
    if summary.action_items:
        parts.append("Open action items:\n" + "\n".join(f"- {a}" for a in summary.action_items))
    if not parts:
        return ""
    return "<conversation_summary>\n" + "\n".join(parts) + "\n</conversation_summary>"


def build_system_prompt(
    context: RelevantContext | None = None,
    source_interface: str = "main",
    cross_session: bool = False,
) -> str:
    """Build the memory-aware system prompt for the unified tier.

    Args:
        context: Memory context for the request, if memory is enabled.
        source_interface: Interface the request came from.
        cross_session: Whether memory from earlier sessions was shared in.

    Returns:
        Complete system prompt string.
    """
    prompt = SYSTEM_PROMPT_BASE

    if source_interface != "main":
        prompt += f"\n\nThe user is chatting from the {source_interface} widget; keep answers short."

    if context is None:
        return prompt

    prompt += "\n\n" + _profile_block(context.user_profile)

    memories = context.relevant_memories[:MAX_PROMPT_MEMORIES]
    if memories:
        lines = "\n".join(f"- {m.content}" for m in memories)
        prompt += f"\n\n<relevant_memories>\n{lines}\n</relevant_memories>"

    tool_results = context.tool_results[:MAX_PROMPT_TOOL_RESULTS]
    if tool_results:
        lines = "\n".join(f"[{t.source_interface}] {t.content}" for t in tool_results)
        prompt += f"\n\n<tool_results>\n{lines}\n</tool_results>"

    if context.conversation_summary:
        block = _summary_block(context.conversation_summary)
        if block:
            prompt += "\n\n" + block

    if cross_session:
        prompt += "\n\nSome memories above come from the user's earlier sessions."

    return prompt


def build_messages(
    level: ContextLevel,
    message: str,
    context: RelevantContext | None = None,
    source_interface: str = "main",
    cross_session: bool = False,
) -> list[dict[str, str]]:
    """Build the chat messages sent to a tier.

    FULL gets the memory-aware prompt and the recent session history, REDUCED
    gets the base prompt and the last few turns, MINIMAL gets a one-line
    system prompt and the message alone.
    """
    if level is ContextLevel.MINIMAL:
        return [
            {"role": "system", "content": DIRECT_SYSTEM_PROMPT},
            {"role": "user", "content": message},
        ]

    history = [as_chat_message(e) for e in context.recent_context] if context else []

    if level is ContextLevel.FULL:
        system = build_system_prompt(context, source_interface, cross_session)
    else:
        system = SYSTEM_PROMPT_BASE
        history = history[-SIMPLIFIED_HISTORY:]

    return [
        {"role": "system", "content": system},
        *history,
        {"role": "user", "content": message},
    ]
