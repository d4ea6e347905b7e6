"""
Incremental conversation summarization.

The summarizer folds older messages into a rolling summary while keeping a
recency buffer of the newest messages verbatim. One call performs one
summarization step: it picks a cut point, folds everything between the prior
summary point and the cut point into the summary and returns a new
``Summary``. It never moves the summary point backward.

Pending messages are packed into chunks that fit the model's context window;
each chunk costs one completion call and carries the running summary forward.
"""

from typing import List, Optional, TYPE_CHECKING

from memory_llm.extractors.prompts import (
    build_summary_prompt,
    format_message_lines,
)
from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMClientInterface,
    LLMError,
    LLMValidationError,
)
from memory_llm.model.message import Message, Summary
from memory_llm.monitoring.structured_logger import OperationLogger, get_logger

if TYPE_CHECKING:
    from memory_llm.config.config_manager import AppConfig, SummarizerConfig


def compute_cut_index(window_size: int, message_count: int, min_pending_count: int = 0) -> int:
    """
    Index of the newest message to fold into the summary.

    At least ``max(min_pending_count, window_size // 2)`` newer messages stay
    pending. A negative result means the window is too small to summarize.
    """
    return message_count - max(min_pending_count, window_size // 2) - 1


def summary_point_index(messages: List[Message], summary: Optional[Summary]) -> int:
    """Position of the summary point in messages, -1 if absent."""
    if summary is None or summary.summary_point_uuid is None:
        return -1
    for index, message in enumerate(messages):
        if message.uuid == summary.summary_point_uuid:
            return index
    return -1


class Summarizer:
    """
    Token-budgeted rolling summarizer.

    Holds a completion client and read-only settings, so one instance can
    serve many conversations. Callers must not run two summarizations of the
    same conversation concurrently; the memory store serializes them.
    """

    def __init__(self, client: LLMClientInterface, config: Optional["SummarizerConfig"] = None):
        """
        Args:
            client: Completion client used for every summarization call
            config: Summarizer settings; defaults when omitted
        """
        if config is None:
            from memory_llm.config.config_manager import SummarizerConfig

            config = SummarizerConfig()

        self.client = client
        self.config = config
        self.logger = get_logger(__name__, "summarizer")

    @property
    def prompt_limit(self) -> int:
        """Tokens one summarization prompt may use, leaving room for the output."""
        return self.client.max_tokens - self.config.max_output_tokens

    def needs_compaction(self, summary: Summary) -> bool:
        """True when the summary has grown close to the model's context limit."""
        return summary.token_count >= self.config.compaction_threshold * self.client.max_tokens

    def _line_budget(self, summary_content: str) -> int:
        """Tokens left for message lines once the summary is rendered into the prompt."""
        rendered = build_summary_prompt(summary_content, "")
        return self.prompt_limit - self.client.count_tokens(rendered)

    async def _fold(self, summary_content: str, messages: List[Message]) -> str:
        prompt = build_summary_prompt(summary_content, format_message_lines(messages))
        content = await self.client.complete(prompt, max_tokens=self.config.max_output_tokens)
        content = content.strip()
        if not content:
            raise LLMError("no summary found after summarization")
        return content

    async def _fold_pending(self, summary_content: str, messages: List[Message]) -> str:
        """
        Fold messages with content into the summary, one chunk per completion.

        A chunk is closed as soon as the next line would overflow the prompt
        next to the current summary, so the budget shrinks as the summary
        grows. A message too large for any chunk is sent on its own and left
        to the provider to reject.
        """
        budget = self._line_budget(summary_content)
        chunk: List[Message] = []
        used = 0

        for message in messages:
            if not message.content:
                continue
            tokens = message.token_count or self.client.count_tokens(
                format_message_lines([message])
            )
            if chunk and used + tokens > budget:
                summary_content = await self._fold(summary_content, chunk)
                budget = self._line_budget(summary_content)
                chunk, used = [], 0
            chunk.append(message)
            used += tokens

        if chunk:
            summary_content = await self._fold(summary_content, chunk)
        return summary_content

    async def summarize(
        self,
        window_size: int,
        messages: List[Message],
        prior_summary: Optional[Summary] = None,
        min_pending_count: Optional[int] = None,
    ) -> Summary:
        """
        Fold messages up to the cut point into a new summary.

        Args:
            window_size: Message window; half of it stays pending
            messages: Conversation messages, oldest first
            prior_summary: Last persisted summary, or None
            min_pending_count: Minimum number of messages to leave pending

        Returns:
            The new summary, or the prior one (an empty Summary when None)
            if there is nothing to fold

        Raises:
            LLMValidationError: On a negative window size or pending count
            LLMError: If the completion call fails or returns nothing
        """
        if min_pending_count is None:
            min_pending_count = self.config.min_pending_count
        if window_size < 0 or min_pending_count < 0:
            raise LLMValidationError("window size and minimum pending count cannot be negative")

        cut_index = compute_cut_index(window_size, len(messages), min_pending_count)
        prior_index = summary_point_index(messages, prior_summary)

        if cut_index < 0 or cut_index <= prior_index:
            self.logger.debug(
                "Nothing to summarize",
                message_count=len(messages),
                cut_index=cut_index,
                prior_index=prior_index,
            )
            return prior_summary if prior_summary is not None else Summary()

        pending = messages[prior_index + 1 : cut_index + 1]
        content = prior_summary.content if prior_summary is not None else ""

        with OperationLogger(
            self.logger,
            "summarize",
            model=self.client.model_name,
            pending_count=len(pending),
            cut_index=cut_index,
        ):
            content = await self._fold_pending(content, pending)

        if not content:
            raise LLMError("no summary found after summarization")

        summary = Summary(
            content=content,
            token_count=self.client.count_tokens(content),
            summary_point_uuid=messages[cut_index].uuid,
        )

        if self.needs_compaction(summary):
            self.logger.warning(
                "Summary is approaching the model context limit",
                token_count=summary.token_count,
                max_tokens=self.client.max_tokens,
            )

        return summary


async def summarize(
    window_size: int,
    messages: List[Message],
    prior_summary: Optional[Summary] = None,
    min_pending_count: int = 0,
    client: Optional[LLMClientInterface] = None,
    config: Optional["AppConfig"] = None,
) -> Summary:
    """
    Run one summarization step.

    Resolves a completion client from configuration when none is given and
    closes it afterwards.
    """
    if config is None:
        from memory_llm.config import get_config

        config = get_config().config

    owned = client is None
    if owned:
        from memory_llm.llm.factory import resolve_completion_client

        client = resolve_completion_client(config)

    try:
        return await Summarizer(client, config.summarizer).summarize(
            window_size, messages, prior_summary, min_pending_count
        )
    finally:
        if owned:
            await client.close()
