import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path

from vault_ingest.config.settings import Settings
from vault_ingest.logging.logger import Log
from vault_ingest.processor.exceptions import FileReadError
from vault_ingest.processor.file_loader import FileLoader
from vault_ingest.processor.models import InputFile, ProcessingOptions
from vault_ingest.processor.processor import build_processor
from vault_ingest.search.vector_index import VectorIndex
from vault_ingest.worker.batch_runner import BatchRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-ingest",
        description="Extract transactions from PDFs and receipt photos on this machine.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="PDF or image files")
    parser.add_argument("--force-ocr", action="store_true", help="ignore the PDF text layer")
    parser.add_argument("--language", default=None, help="OCR language code, e.g. eng")
    parser.add_argument("--skip-embedding", action="store_true")
    parser.add_argument("--skip-thumbnail", action="store_true")
    parser.add_argument(
        "--index-out",
        type=Path,
        default=None,
        help="write a vector index of the embeddings to this path",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> build processor -> run batch -> print sync payloads."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    # stdout carries the JSON payloads.
    Log.configure(settings.log_level, stream=sys.stderr)

    loader = FileLoader()
    files: list[InputFile] = []
    for path in args.files:
        try:
            files.append(loader.load(path))
        except (FileNotFoundError, FileReadError) as exc:
            Log.error(f"Skipping {path}: {exc}")

    options = ProcessingOptions(
        skip_embedding=args.skip_embedding,
        skip_thumbnail=args.skip_thumbnail,
        ocr_language=args.language or settings.ocr_language,
        force_ocr=args.force_ocr,
        min_text_for_no_ocr=settings.min_text_for_no_ocr,
    )

    processor = build_processor(settings)
    try:
        result = BatchRunner(processor).run(files, options)
    finally:
        processor.terminate()

    output = {
        "transactions": [document.to_transaction().to_payload() for document in result.successful],
        "failed": [{"file_name": f.file_name, "error": f.error} for f in result.failed],
    }
    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")

    if args.index_out is not None:
        index = VectorIndex(settings.embedding_dimensions)
        for document in result.successful:
            if document.embedding is not None:
                index.add_vector(
                    document.id,
                    document.embedding,
                    {"file_name": document.file_metadata.original_name},
                )
        args.index_out.write_bytes(index.save())
        Log.info(f"Wrote {len(index)} vectors to {args.index_out}")

    failed_loads = len(args.files) - len(files)
    return 1 if result.failed or failed_loads else 0


if __name__ == "__main__":
    sys.exit(main())
