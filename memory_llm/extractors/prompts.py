"""Prompt templates for conversation summarization."""

from typing import List

from memory_llm.model.message import Message

SUMMARY_PROMPT_TEMPLATE = """Review the current summary and the new lines of the conversation. \
Write a new summary that progressively builds on the current summary, \
adding the information from the new lines.
Keep the summary concise and in the third person. If the new lines add \
nothing meaningful, return the current summary unchanged.

Current summary:
{prior_summary}

New lines of conversation:
{new_lines}

New summary:"""


def format_message_lines(messages: List[Message]) -> str:
    """Render messages as ``role: content`` lines, skipping empty messages."""
    lines = []
    for message in messages:
        if not message.content:
            continue
        if message.role:
            lines.append(f"{message.role}: {message.content}")
        else:
            lines.append(message.content)
    return "\n".join(lines)


def build_summary_prompt(prior_summary: str, new_lines: str) -> str:
    return SUMMARY_PROMPT_TEMPLATE.format(
        prior_summary=prior_summary or "(none)",
        new_lines=new_lines,
    )

