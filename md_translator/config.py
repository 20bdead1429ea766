import os
from dataclasses import dataclass
from typing import Optional

# Environment variables and API configuration
API_KEY = os.environ.get("API_KEY")  # Generic API Key name
# Endpoint example for OpenAI-compatible API
API_ENDPOINT_URL = os.environ.get("API_ENDPOINT_URL", "https://api.openai.com/v1/chat/completions")
# Model names (can be the same if the model handles both tasks with different prompts)
TRANSLATE_MODEL_NAME = os.environ.get("TRANSLATE_MODEL_NAME", "gpt-4o")
REVIEW_MODEL_NAME = os.environ.get("REVIEW_MODEL_NAME", "gpt-4o")
TOKENIZER_MODEL_NAME = os.environ.get("TOKENIZER_MODEL_NAME", "gpt-3.5-turbo")

REQUEST_TIMEOUT = 300  # seconds, per oracle request

MAX_LLM_ATTEMPTS = 5  # retries of a single malformed/failed oracle call
MAX_PROOFREAD_ATTEMPTS = 5
DEFAULT_CORRECTNESS_THRESHOLD = 0.97

CONTEXT_MIN_TOKENS = 500
MAX_CHUNK_CHARS = 1000

HASH_FILE_NAME = ".md_hash_db.json"
# a translated output is renamed to this before it is rewritten
BACKUP_SUFFIX = ".bk"
VCS_DIR_NAMES = frozenset({".git", ".svn", ".hg"})

DEFAULT_SOURCE_LANGUAGE = "English"
DEFAULT_TARGET_LANGUAGE = "Japanese"
DEFAULT_DOCUMENT_NAME = "the documentation"


@dataclass
class TranslatorConfig:
    """Options of one translation run, as given on the command line."""

    correctness_threshold: float = DEFAULT_CORRECTNESS_THRESHOLD
    force: bool = False
    sync_delete: bool = False
    quote_original: bool = True
    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE
    document_name: str = DEFAULT_DOCUMENT_NAME
    hash_file: Optional[str] = None
    memory_file: Optional[str] = None
    verbose: bool = False

    def hash_file_for(self, output_dir: str) -> str:
        return self.hash_file or os.path.join(output_dir, HASH_FILE_NAME)
