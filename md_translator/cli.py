import argparse
import logging
import sys

from md_translator import config
from md_translator.config import TranslatorConfig
from md_translator.errors import ConfigurationError
from md_translator.hash_store import HashStore
from md_translator.llm import LLMService
from md_translator.memory import JsonlTranslationMemory, NullTranslationMemory
from md_translator.processor import ProcessorFactory
from md_translator.translator import ProofreadTranslator
from md_translator.walker import FileWalker

logger = logging.getLogger(__name__)


def accuracy(value: str) -> float:
    try:
        threshold = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid accuracy: {value!r}")
    if not 0.0 <= threshold <= 1.0:
        raise argparse.ArgumentTypeError(f"accuracy must be between 0 and 1, got {threshold}")
    return threshold


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="md-translator",
        description="Translate Markdown, MDX and notebook documents with an LLM, translating then proofreading every block.",
    )
    parser.add_argument("-p", "--pattern", required=True, help="Glob pattern of the source files, e.g. 'docs/**/*.md'.")
    parser.add_argument("-o", "--output", required=True, help="Output directory mirroring the source tree.")
    parser.add_argument("-f", "--force", action="store_true", help="Retranslate files even if they are unchanged.")
    parser.add_argument("-d", "--delete", action="store_true", help="Delete output files that have no source file anymore.")
    parser.add_argument(
        "-a", "--accuracy", type=accuracy, default=config.DEFAULT_CORRECTNESS_THRESHOLD,
        help="Correctness score (0-1) at which a proofread translation is accepted.",
    )
    parser.add_argument("--no-quote-original", dest="quote_original", action="store_false",
                        help="Do not keep the original text next to the translation.")
    parser.add_argument("--document-name", default=config.DEFAULT_DOCUMENT_NAME,
                        help="Name of the document set, used in prompts.")
    parser.add_argument("--source-language", default=config.DEFAULT_SOURCE_LANGUAGE)
    parser.add_argument("--target-language", default=config.DEFAULT_TARGET_LANGUAGE)
    parser.add_argument("--hash-file", help=f"Hash store path (default: <output>/{config.HASH_FILE_NAME}).")
    parser.add_argument("--memory-file", help="Append every translated block to this JSONL file.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s')
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    run_config = TranslatorConfig(
        correctness_threshold=args.accuracy,
        force=args.force,
        sync_delete=args.delete,
        quote_original=args.quote_original,
        source_language=args.source_language,
        target_language=args.target_language,
        document_name=args.document_name,
        hash_file=args.hash_file,
        memory_file=args.memory_file,
        verbose=args.verbose,
    )

    if not config.API_KEY:
        logger.error("API_KEY environment variable not set.")
        return 1

    try:
        translate_service = LLMService(config.API_KEY, config.API_ENDPOINT_URL, config.TRANSLATE_MODEL_NAME)
        review_service = LLMService(config.API_KEY, config.API_ENDPOINT_URL, config.REVIEW_MODEL_NAME)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    translator = ProofreadTranslator(
        translate_service,
        review_service,
        threshold=run_config.correctness_threshold,
        source_language=run_config.source_language,
        target_language=run_config.target_language,
    )
    memory = JsonlTranslationMemory(run_config.memory_file) if run_config.memory_file else NullTranslationMemory()
    factory = ProcessorFactory(translator, memory)
    hash_store = HashStore(run_config.hash_file_for(args.output))
    walker = FileWalker(factory.get_processor, hash_store, run_config)

    report = walker.walk(args.pattern, args.output)
    if report.failed:
        logger.warning(f"{len(report.failed)} file(s) failed: {', '.join(report.failed)}")
    logger.info("Translation process finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
