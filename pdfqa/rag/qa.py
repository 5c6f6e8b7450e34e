"""Query pipeline: retrieve the closest chunks and answer from them."""
import structlog

from pdfqa import config
from pdfqa.errors import InvalidQuery
from pdfqa.rag.generator import AnswerGenerator
from pdfqa.rag.retriever import Retriever

logger = structlog.get_logger()

ANSWER_PROMPT_TEMPLATE = """You are an AI assistant that answers questions about a specific document.

Use only the context documents provided to answer the question.
If the answer is not in the context, say clearly that you do not have that information. Do not make up an answer.

Question: {query}"""


def build_prompt(query: str) -> str:
    return ANSWER_PROMPT_TEMPLATE.format(query=query)


class QueryPipeline:
    """Answer questions from the indexed document."""

    def __init__(
        self,
        cfg: config.PipelineConfig,
        retriever: Retriever,
        generator: AnswerGenerator,
    ):
        self.config = cfg
        self.retriever = retriever
        self.generator = generator
        self.top_k = cfg.retrieval_top_k

    async def answer_question(self, query: str) -> str:
        """Answer a question grounded on the top-k retrieved chunks.

        Args:
            query: The user's question

        Returns:
            The generated answer, verbatim

        Raises:
            InvalidQuery: If the question is empty
            RetrievalError: If the search fails
            GenerationError: If the model call fails
        """
        if query is None or not query.strip():
            logger.warning("empty_query_provided")
            raise InvalidQuery("Question must not be empty")

        results = await self.retriever.retrieve(query, top_k=self.top_k)

        if not results:
            logger.info("no_relevant_context_found", query_preview=query[:100])

        generation = await self.generator.generate(build_prompt(query), results)

        logger.info(
            "question_answered",
            query_length=len(query),
            sources=[r.source for r in results],
            answer_length=len(generation.text),
        )

        return generation.text
