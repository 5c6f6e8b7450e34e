#!/usr/bin/env python
"""Index a PDF into the local vector store.

Usage:
    python scripts/index_pdf.py path/to/file.pdf              # Append to the index
    python scripts/index_pdf.py path/to/file.pdf --rebuild    # Clear the index first
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pdfqa import config
from pdfqa.errors import PdfQAError
from pdfqa.logging_config import configure_logging
from pdfqa.service import create_service
import structlog

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Index a PDF for question answering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/index_pdf.py docs/report.pdf
  python scripts/index_pdf.py docs/report.pdf --rebuild
        """,
    )

    parser.add_argument("file_path", type=Path, help="PDF file to index")

    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Clear the index before indexing (drops existing entries)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    return parser


async def main(argv=None) -> int:
    """Main entry point for the indexing script."""
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)

    cfg = config.PipelineConfig.from_env()

    print("\n📋 Configuration:")
    print(f"   Index name:       {cfg.index_name}")
    print(f"   Data directory:   {cfg.data_dir}")
    print(f"   Embedding model:  {cfg.embedding_model}")
    print(f"   Chunk length:     {cfg.chunk_min_length}-{cfg.chunk_max_length} chars")
    print(f"   Chunk overlap:    {cfg.chunk_overlap} chars")

    service = create_service(cfg)
    start_time = datetime.now()

    try:
        if args.rebuild:
            print("\n⚠️  Rebuild mode: clearing existing index entries.")
            await service.clear()

        await service.indexer_documents(str(args.file_path))

    except KeyboardInterrupt:
        print("\n\n⚠️  Indexing cancelled by user.\n")
        return 1

    except PdfQAError as e:
        print(f"\n❌ {type(e).__name__}: {e}\n")
        return 1

    elapsed = (datetime.now() - start_time).total_seconds()
    stats = service.stats()

    print(f"\n{'=' * 60}")
    print("  Indexing Complete!")
    print(f"{'=' * 60}\n")
    print(f"  📝 Documents in index:   {stats['document_count']}")
    print(f"  🧮 Vectors in index:     {stats['vector_count']}")
    print(f"  ⏱️  Time elapsed:         {elapsed:.1f}s")
    print(f"\n{'=' * 60}\n")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
