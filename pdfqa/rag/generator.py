"""Answer generation grounded on retrieved documents."""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import structlog

from pdfqa import config
from pdfqa.errors import GenerationError
from pdfqa.rag.documents import RetrievalResult
from pdfqa.rag.retriever import format_context

logger = structlog.get_logger()

NO_CONTEXT_MARKER = "(No documents were retrieved for this question.)"


@dataclass
class GenerationResult:
    text: str
    model: str


class AnswerGenerator:
    """Send a prompt plus grounding documents to the chat model."""

    def __init__(
        self,
        client,
        model: str = None,
        temperature: Optional[float] = 0.0,
        max_context_chars: int = None,
    ):
        """Initialize the generator.

        Args:
            client: Object with an async ``chat(messages, model, temperature)``
                method returning ``{"message": {"content": ...}}``
            model: Chat model name (default from config)
            temperature: Sampling temperature; 0 keeps answers close to the context
            max_context_chars: Cap on the rendered context block
        """
        self.client = client
        self.model = model or config.CHAT_MODEL
        self.temperature = temperature
        self.max_context_chars = max_context_chars or config.MAX_CONTEXT_CHARS

    def build_messages(
        self, prompt: str, documents: Sequence[RetrievalResult]
    ) -> List[Dict[str, str]]:
        """System message carries the documents; user message carries the prompt."""
        context = format_context(list(documents), max_chars=self.max_context_chars)

        system_content = "CONTEXT DOCUMENTS:\n" + (context or NO_CONTEXT_MARKER)

        return [
            {"role": "system", "content": system_content},
            {"role": "user", "content": prompt},
        ]

    async def generate(
        self, prompt: str, documents: Sequence[RetrievalResult]
    ) -> GenerationResult:
        """Generate an answer.

        The reply text is returned verbatim, including an empty reply.

        Raises:
            GenerationError: If the chat call fails or the response carries
                no message
        """
        messages = self.build_messages(prompt, documents)

        try:
            response = await self.client.chat(
                messages, model=self.model, temperature=self.temperature
            )
        except Exception as e:
            logger.error(
                "generation_failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GenerationError(f"Generation failed: {e}") from e

        message = response.get("message") if isinstance(response, dict) else None
        if not isinstance(message, dict):
            logger.error("malformed_generation_response", model=self.model, response=response)
            raise GenerationError("Malformed response from LLM: no message")

        text = message.get("content") or ""

        if not text:
            logger.warning("empty_generation_response", model=self.model)

        logger.info(
            "answer_generated",
            model=self.model,
            context_documents=len(documents),
            answer_length=len(text),
        )

        return GenerationResult(text=text, model=self.model)
