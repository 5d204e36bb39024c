"""Extracts and categorizes raw text spans from a session transcript."""

from collections import Counter
from typing import Dict, List, Literal

from tokenscope.sessions.models import Message, Part, ReasoningPart, TextPart, ToolPart
from .models import CategoryEntrySource

DEFAULT_TOOL_NAME = "tool"

# (label, predicate on (lowercased content, raw content)), first match wins
_SYSTEM_PROMPT_RULES = (
    ("System#MainPrompt", lambda lower, raw: "opencode" in lower and "cli" in lower and len(raw) > 500),
    ("System#ShortPrompt", lambda lower, raw: "opencode" in lower and "cli" in lower),
    ("System#AgentMode", lambda lower, raw: "agent" in lower and "mode" in lower),
    ("System#Permissions", lambda lower, raw: any(k in lower for k in ("permission", "allowed", "deny"))),
    ("System#ToolRules", lambda lower, raw: "tool" in lower and ("rule" in lower or "guideline" in lower)),
    ("System#Formatting", lambda lower, raw: any(k in lower for k in ("format", "style", "concise"))),
    ("System#ProjectContext", lambda lower, raw: any(k in lower for k in ("project", "repository", "codebase"))),
    ("System#SessionMgmt", lambda lower, raw: any(k in lower for k in ("session", "context", "memory"))),
    ("System#FileRefs", lambda lower, raw: "@" in raw and (".md" in raw or ".txt" in raw)),
    ("System#AgentDef", lambda lower, raw: "name:" in raw and "description:" in raw),
    ("System#CodeGuidelines", lambda lower, raw: "code" in lower and ("convention" in lower or "standard" in lower)),
)


def extract_text(parts: List[Part]) -> str:
    """Join the non-empty text parts of a message, blank-line separated."""
    texts = [part.text.strip() for part in parts if isinstance(part, TextPart)]
    return "\n\n".join(text for text in texts if text)


def identify_system_prompt(content: str, index: int) -> str:
    """Best-effort label for a system prompt from keyword heuristics."""
    lower = content.lower()
    for label, matches in _SYSTEM_PROMPT_RULES:
        if matches(lower, content):
            return label
    return f"System#{index}"


class ContentCollector:
    """Pure extraction functions over a transcript"""

    def collect_system_prompts(self, messages: List[Message]) -> List[CategoryEntrySource]:
        """
        Distinct system prompts, in first-seen order.

        Sources are the text of system-role messages and the raw system strings
        attached to assistant calls.
        """
        prompts: Dict[str, None] = {}

        for message in messages:
            if message.role == "system":
                content = extract_text(message.parts)
                if content:
                    prompts.setdefault(content, None)
            elif message.role == "assistant":
                for prompt in message.system:
                    trimmed = prompt.strip()
                    if trimmed:
                        prompts.setdefault(trimmed, None)

        return [
            CategoryEntrySource(label=identify_system_prompt(content, index), content=content)
            for index, content in enumerate(prompts, start=1)
        ]

    def collect_message_texts(
        self,
        messages: List[Message],
        role: Literal["user", "assistant"]
    ) -> List[CategoryEntrySource]:
        """One entry per message of the role with non-empty text: User#1, User#2, ..."""
        results: List[CategoryEntrySource] = []
        prefix = role.capitalize()

        for message in messages:
            if message.role != role:
                continue
            content = extract_text(message.parts)
            if not content:
                continue
            results.append(CategoryEntrySource(label=f"{prefix}#{len(results) + 1}", content=content))

        return results

    def collect_tool_outputs(self, messages: List[Message]) -> List[CategoryEntrySource]:
        """Completed tool outputs, concatenated per tool name across the session."""
        outputs: Dict[str, List[str]] = {}

        for part in self._tool_parts(messages):
            if not part.state.is_completed:
                continue
            output = (part.state.output or "").strip()
            if not output:
                continue
            outputs.setdefault(part.tool or DEFAULT_TOOL_NAME, []).append(output)

        return [
            CategoryEntrySource(label=name, content="\n\n".join(chunks))
            for name, chunks in outputs.items()
        ]

    def collect_tool_call_counts(self, messages: List[Message]) -> Dict[str, int]:
        """Invocation count per tool name, whatever the execution status."""
        counts = Counter(part.tool or DEFAULT_TOOL_NAME for part in self._tool_parts(messages))
        return dict(counts)

    def collect_all_tools_called(self, messages: List[Message]) -> List[str]:
        return sorted(self.collect_tool_call_counts(messages))

    def collect_reasoning_texts(self, messages: List[Message]) -> List[CategoryEntrySource]:
        """One entry per non-empty reasoning part: Reasoning#1, Reasoning#2, ..."""
        results: List[CategoryEntrySource] = []

        for message in messages:
            for part in message.parts:
                if not isinstance(part, ReasoningPart):
                    continue
                text = part.text.strip()
                if text:
                    results.append(CategoryEntrySource(label=f"Reasoning#{len(results) + 1}", content=text))

        return results

    @staticmethod
    def _tool_parts(messages: List[Message]):
        for message in messages:
            for part in message.parts:
                if isinstance(part, ToolPart):
                    yield part
