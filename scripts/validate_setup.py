#!/usr/bin/env python
"""Validate setup - check dependencies, configuration and the model service."""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_success(msg):
    print(f"{GREEN}✓{RESET} {msg}")


def print_error(msg):
    print(f"{RED}✗{RESET} {msg}")


def print_info(msg):
    print(f"{BLUE}ℹ{RESET} {msg}")


def print_warning(msg):
    print(f"{YELLOW}⚠{RESET} {msg}")


def print_section(title):
    print(f"\n{BLUE}{'=' * 60}{RESET}")
    print(f"{BLUE}{title:^60}{RESET}")
    print(f"{BLUE}{'=' * 60}{RESET}\n")


DEPENDENCIES = [
    ("quart", "Quart web framework"),
    ("httpx", "HTTP client"),
    ("faiss", "FAISS vector index"),
    ("numpy", "Numerical arrays"),
    ("pypdf", "PDF text extraction"),
    ("pydantic", "Request validation"),
    ("structlog", "Structured logging"),
]


async def main():
    print_section("pdfqa - Setup Validation")

    errors = []
    warnings = []

    # 1. Python version check
    print_section("1. Python Environment")
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print_info(f"Python version: {python_version}")
    if sys.version_info >= (3, 10):
        print_success("Python version >= 3.10")
    else:
        print_error("Python version < 3.10 (required)")
        errors.append("Python version too old")

    in_venv = sys.base_prefix != sys.prefix
    if in_venv:
        print_success("Running in virtual environment")
    else:
        print_warning("Not running in virtual environment (recommended)")
        warnings.append("Not in venv")

    # 2. Import core dependencies
    print_section("2. Core Dependencies")

    for module_name, description in DEPENDENCIES:
        try:
            __import__(module_name)
            print_success(f"{description:30} ({module_name})")
        except ImportError as e:
            print_error(f"{description:30} ({module_name}) - {e}")
            errors.append(f"Missing: {module_name}")

    # 3. Configuration
    print_section("3. Configuration")

    try:
        from pdfqa import config
        from pdfqa.rag.chunker import ChunkOptions

        cfg = config.PipelineConfig.from_env()
        print_success("Config loaded successfully")
        print_info(f"  Chat model: {cfg.chat_model}")
        print_info(f"  Embedding model: {cfg.embedding_model}")
        print_info(f"  Ollama URL: {cfg.ollama_base_url}")
        print_info(f"  Index name: {cfg.index_name}")
        print_info(f"  Data directory: {cfg.data_dir}")

        ChunkOptions.from_config(cfg)
        print_success(
            f"Chunk options valid ({cfg.chunk_min_length}-{cfg.chunk_max_length} chars, "
            f"overlap {cfg.chunk_overlap}, {cfg.chunk_split_policy})"
        )

    except Exception as e:
        print_error(f"Invalid configuration: {e}")
        errors.append("Config loading failed")
        return errors, warnings

    # 4. Model service
    print_section("4. Ollama Service")

    from pdfqa.llm_client import OllamaClient

    client = OllamaClient.from_config(cfg)

    try:
        models = set(await client.list_models())
        print_success(f"Ollama service reachable at {cfg.ollama_base_url}")
        print_info(f"Found {len(models)} models installed")

        for label, name in (("Chat", cfg.chat_model), ("Embedding", cfg.embedding_model)):
            if name in models:
                print_success(f"{label} model available: {name}")
            else:
                print_error(f"{label} model missing: {name}")
                print_info(f"  Run: ollama pull {name}")
                errors.append(f"Missing {label.lower()} model: {name}")

    except Exception as e:
        print_error(f"Cannot reach Ollama service: {e}")
        print_info("  Make sure Ollama is running: ollama serve")
        errors.append("Ollama not reachable")
        return errors, warnings

    # 5. Embedding round trip
    print_section("5. Embedding API Test")

    try:
        response = await client.embeddings(prompt="test", model=cfg.embedding_model)
        dimension = len(response.get("embedding", []))
        if dimension:
            print_success(f"Embedding API working (dimension: {dimension})")
        else:
            print_error("Embedding response missing 'embedding' field")
            errors.append("Embedding API issue")
    except Exception as e:
        print_error(f"Embedding API test failed: {e}")
        errors.append(f"API test failed: {e}")

    # 6. Summary
    print_section("Summary")

    if not errors:
        print_success("All checks passed! ✨")
    else:
        print_error(f"Found {len(errors)} error(s):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")

    if warnings:
        print_warning(f"\nFound {len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            print(f"  {i}. {warning}")

    print()
    return errors, warnings


if __name__ == "__main__":
    errors, warnings = asyncio.run(main())
    sys.exit(1 if errors else 0)
