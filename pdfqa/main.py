"""Quart application exposing the indexing and question-answering flows."""
from typing import Optional

import structlog
from pydantic import BaseModel, Field, ValidationError
from quart import Quart, jsonify, request

from pdfqa.errors import (
    ExtractionError,
    FileNotFound,
    GenerationError,
    IndexingError,
    InvalidQuery,
    PdfQAError,
    RetrievalError,
)
from pdfqa.logging_config import configure_logging
from pdfqa.service import DocumentQAService, create_service

logger = structlog.get_logger()


class IndexRequest(BaseModel):
    file_path: str = Field(min_length=1, description="Path to the PDF file to index")


class QuestionRequest(BaseModel):
    question: str = Field(description="Question about the document")


# Pipeline error -> HTTP status
ERROR_STATUS = [
    (InvalidQuery, 400),
    (FileNotFound, 404),
    (ExtractionError, 422),
    (IndexingError, 502),
    (RetrievalError, 502),
    (GenerationError, 502),
]


def _error_status(error: PdfQAError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


async def _parse_body(model: type):
    data = await request.get_json(silent=True)
    if data is None:
        return None, (jsonify({"error": "Request body must be a JSON object"}), 400)
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        logger.warning("invalid_request_body", errors=e.errors(include_url=False))
        return None, (jsonify({"error": "Invalid request body", "details": e.errors(include_url=False)}), 400)


def create_app(service: Optional[DocumentQAService] = None) -> Quart:
    """Create the Quart app.

    Args:
        service: Pre-built service (default: built from the environment)
    """
    app = Quart(__name__)
    app.config["PDFQA_SERVICE"] = service or create_service()

    def get_service() -> DocumentQAService:
        return app.config["PDFQA_SERVICE"]

    @app.errorhandler(PdfQAError)
    async def pipeline_error(error: PdfQAError):
        status = _error_status(error)
        logger.error(
            "pipeline_error",
            error=str(error),
            error_type=type(error).__name__,
            status_code=status,
        )
        return jsonify({"error": str(error), "kind": type(error).__name__}), status

    @app.route("/api/index", methods=["POST"])
    async def index_document():
        """Index a PDF into the configured index.

        Expects JSON body: {"file_path": "path/to/file.pdf"}
        """
        body, error_response = await _parse_body(IndexRequest)
        if error_response:
            return error_response

        logger.info("index_request_received", file_path=body.file_path)
        service = get_service()
        await service.indexer_documents(body.file_path)

        return jsonify({"status": "indexed", "index_name": service.config.index_name})

    @app.route("/api/index", methods=["DELETE"])
    async def clear_index():
        """Drop every entry of the configured index."""
        service = get_service()
        await service.clear()
        return jsonify({"status": "cleared", "index_name": service.config.index_name})

    @app.route("/api/qa", methods=["POST"])
    async def document_qa():
        """Answer a question about the indexed document.

        Expects JSON body: {"question": "..."}
        Returns JSON: {"answer": "..."}
        """
        body, error_response = await _parse_body(QuestionRequest)
        if error_response:
            return error_response

        service = get_service()
        limit = service.config.max_question_chars
        if len(body.question) > limit:
            logger.warning(
                "question_too_long",
                question_length=len(body.question),
                max_question_chars=limit,
            )
            return jsonify({"error": f"Question must be at most {limit} characters"}), 400

        logger.info(
            "qa_request_received",
            question_length=len(body.question),
            question_preview=body.question[:100],
        )
        answer = await service.document_qa(body.question)

        return jsonify({"answer": answer})

    @app.route("/api/stats")
    async def stats():
        return jsonify(get_service().stats())

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - the model service is reachable and both models are installed."""
        service = get_service()
        checks = {
            "status": "healthy",
            "ollama": False,
            "models": False,
        }

        try:
            models = await service.client.list_models()
            checks["ollama"] = True

            missing = [
                name
                for name in (service.config.chat_model, service.config.embedding_model)
                if name not in models
            ]
            if missing:
                checks["status"] = "unhealthy"
                checks["error"] = f"Missing models: {', '.join(missing)}"
            else:
                checks["models"] = True

            status_code = 200 if checks["status"] == "healthy" else 503
            return jsonify(checks), status_code

        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks["status"] = "unhealthy"
            checks["error"] = str(e)
            return jsonify(checks), 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    configure_logging()
    # For development; run under hypercorn in production
    create_app().run(host="0.0.0.0", port=5000, debug=True)
