#!/usr/bin/env python
"""Ask a question about the indexed PDF.

Usage:
    python scripts/ask.py "What is the capital of France?"
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pdfqa import config
from pdfqa.errors import PdfQAError
from pdfqa.logging_config import configure_logging
from pdfqa.service import create_service


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ask a question about the indexed PDF")
    parser.add_argument("question", help="Question about the document")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else "WARNING")

    service = create_service(config.PipelineConfig.from_env())

    try:
        answer = await service.document_qa(args.question)
    except PdfQAError as e:
        print(f"❌ {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(answer)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
