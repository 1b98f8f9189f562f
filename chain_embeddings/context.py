"""
Context synthesizer: asks a chat model for a one or two sentence summary
of how a chain fits into the surrounding conversation.

The summary is prefixed to the chain text before embedding so that terse
messages ("yes, same here") still land near the topic they answer.
"""

from __future__ import annotations

import logging

from .llm.base import ChatMessage, ChatModel

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a chat context analyzer. "
    "Please respond with an extremely concise context summary only."
)

USER_PROMPT_TEMPLATE = """
<conversation>
{conversation}
</conversation>

<chunk>
{chunk}
</chunk>

Please provide a brief (1-2 sentences) context summarizing the chunk's relevance in the conversation.
Return only the context, no extraneous text.
"""


class ContextSynthesizer:
    def __init__(self, model: ChatModel, temperature: float = 0.3, max_tokens: int = 100):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_messages(self, transcript: str, chunk: str) -> list[ChatMessage]:
        return [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(
                role="user",
                content=USER_PROMPT_TEMPLATE.format(conversation=transcript, chunk=chunk),
            ),
        ]

    async def synthesize(self, transcript: str, chunk: str) -> str:
        """
        Summarize the chunk's role in the transcript.

        Returns "" on any failure or empty response; never raises.
        """
        try:
            reply = await self.model.complete(
                self.build_messages(transcript, chunk),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.warning(f"Context synthesis failed with {self.model.model_name}: {e}")
            return ""

        if not isinstance(reply, str):
            logger.warning(f"Context synthesis returned {type(reply).__name__}, ignoring")
            return ""
        return reply.strip()
