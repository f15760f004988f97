"""Tests for per-tier prompt assembly."""

from atrium.dispatch import ContextLevel, build_messages, build_system_prompt
from atrium.dispatch.prompt import DIRECT_SYSTEM_PROMPT, SYSTEM_PROMPT_BASE
from atrium.memory import ConversationSummary, MemoryEntry, MemoryKind, RelevantContext, UserProfile


def _entry(content: str, kind: MemoryKind = MemoryKind.CONVERSATION, **kwargs) -> MemoryEntry:
    return MemoryEntry(user_id="u1", session_id="s1", kind=kind, content=content, **kwargs)


def _context(**kwargs) -> RelevantContext:
    defaults = {
        "recent_context": [],
        "relevant_memories": [],
        "tool_results": [],
        "user_profile": UserProfile(user_id="u1"),
    }
    defaults.update(kwargs)
    return RelevantContext(**defaults)


class TestSystemPrompt:
    """Tests for build_system_prompt."""

    def test_base_without_context(self):
        assert build_system_prompt() == SYSTEM_PROMPT_BASE

    def test_includes_profile_memories_and_tools(self):
        context = _context(
            relevant_memories=[_entry("User: I target 6% cap rates", MemoryKind.FACT)],
            tool_results=[
                _entry("Tool: comps\nResult: {\"count\": 4}", MemoryKind.TOOL_RESULT, source_interface="floating")
            ],
            user_profile=UserProfile(
                user_id="u1",
                topic_histogram={"cap rate": 3, "irr": 1},
                tool_usage={"comps": 2},
                total_interactions=7,
            ),
        )

        prompt = build_system_prompt(context)

        assert "<user_profile>" in prompt
        assert "Frequent topics: cap rate, irr" in prompt
        assert "Frequently used tools: comps" in prompt
        assert "<relevant_memories>\n- User: I target 6% cap rates" in prompt
        assert "[floating] Tool: comps" in prompt

    def test_caps_memories(self):
        memories = [_entry(f"memory {i}") for i in range(8)]
        prompt = build_system_prompt(_context(relevant_memories=memories))
        assert "memory 4" in prompt
        assert "memory 5" not in prompt

    def test_summary_block(self):
        summary = ConversationSummary(
            session_id="s1",
            key_topics=["npv"],
            decisions=["Go with plan B"],
            action_items=["Order inspection"],
        )
        prompt = build_system_prompt(_context(conversation_summary=summary))
        assert "<conversation_summary>" in prompt
        assert "- Go with plan B" in prompt
        assert "- Order inspection" in prompt

    def test_empty_summary_omitted(self):
        summary = ConversationSummary(session_id="s1", key_topics=[], decisions=[], action_items=[])
        prompt = build_system_prompt(_context(conversation_summary=summary))
        assert "<conversation_summary>" not in prompt

    def test_interface_and_cross_session_notes(self):
        prompt = build_system_prompt(_context(), source_interface="floating", cross_session=True)
        assert "floating widget" in prompt
        assert "earlier sessions" in prompt


class TestMessages:
    """Tests for build_messages at each context level."""

    def test_minimal_has_no_history(self):
        context = _context(recent_context=[_entry("User: earlier")])
        messages = build_messages(ContextLevel.MINIMAL, "hi", context)
        assert messages == [
            {"role": "system", "content": DIRECT_SYSTEM_PROMPT},
            {"role": "user", "content": "hi"},
        ]

    def test_full_replays_history_with_roles(self):
        context = _context(
            recent_context=[_entry("User: what is the cap rate?"), _entry("Assistant: About 6%.")]
        )
        messages = build_messages(ContextLevel.FULL, "and the IRR?", context)

        assert messages[0]["role"] == "system"
        assert messages[1] == {"role": "user", "content": "what is the cap rate?"}
        assert messages[2] == {"role": "assistant", "content": "About 6%."}
        assert messages[-1] == {"role": "user", "content": "and the IRR?"}

    def test_reduced_trims_history_and_uses_base_prompt(self):
        history = [_entry(f"User: turn {i}") for i in range(10)]
        messages = build_messages(ContextLevel.REDUCED, "next", _context(recent_context=history))

        assert messages[0]["content"] == SYSTEM_PROMPT_BASE
        assert len(messages) == 1 + 4 + 1
        assert messages[1]["content"] == "turn 6"

    def test_full_without_context(self):
        messages = build_messages(ContextLevel.FULL, "hi")
        assert messages == [
            {"role": "system", "content": SYSTEM_PROMPT_BASE},
            {"role": "user", "content": "hi"},
        ]
