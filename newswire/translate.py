"""Translation overlay using Amazon Translate."""

import re
from collections.abc import Iterable
from dataclasses import replace

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .config import TranslationConfig
from .logging_config import create_execution_logger
from .models import Item

JAPANESE_PATTERN = re.compile(r"[぀-ヿ一-鿿]")
ENGLISH_WORD_PATTERN = re.compile(r"\b[a-zA-Z]{3,}\b")

# Amazon Translate rejects documents above 10,000 bytes
MAX_TEXT_BYTES = 10000


def is_english(text: str) -> bool:
    """Heuristic check whether text is mostly English and worth translating.

    Text containing Japanese only qualifies when it still mixes in at least
    two English words; otherwise more than 60% of its characters must be
    ASCII and it must contain at least two English words of 3+ letters.
    """
    if not text:
        return False

    has_english_words = len(ENGLISH_WORD_PATTERN.findall(text)) >= 2
    if JAPANESE_PATTERN.search(text):
        return has_english_words

    ascii_ratio = sum(1 for char in text if ord(char) < 128) / len(text)
    return ascii_ratio > 0.6 and has_english_words


class Translator:
    """Translates item titles and descriptions, keeping the originals."""

    def __init__(self, config: TranslationConfig, execution_id: str | None = None):
        """Initialize the translator with Amazon Translate configuration."""
        self.config = config
        self.logger = create_execution_logger("translator", execution_id)
        self.translate_client = None
        self._cache: dict[str, str] = {}
        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize Amazon Translate client with error handling."""
        try:
            self.translate_client = boto3.client("translate", region_name=self.config.region)
            self.logger.info("Initialized Translate client", region=self.config.region)
        except (NoCredentialsError, ClientError, BotoCoreError) as e:
            self.logger.warning(f"Failed to initialize Translate client: {e}", error=str(e))
            self.translate_client = None

    def translate_text(self, text: str) -> str:
        """Translate text to the target language; returns the input on any failure."""
        if not text or not self.translate_client or not is_english(text):
            return text

        if text in self._cache:
            return self._cache[text]

        payload = text.encode("utf-8")[:MAX_TEXT_BYTES].decode("utf-8", errors="ignore")
        try:
            response = self.translate_client.translate_text(
                Text=payload,
                SourceLanguageCode="auto",
                TargetLanguageCode=self.config.target_language,
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.warning(f"Translation failed: {e}", error=str(e))
            return text

        translated = response.get("TranslatedText") or text
        self._cache[text] = translated
        return translated

    def translate_item(self, item: Item) -> Item:
        """Return a translated copy of the item, or the item itself if nothing changed."""
        title = self.translate_text(item.title)
        description = self.translate_text(item.description)

        if title == item.title and description == item.description:
            return item

        return replace(
            item,
            title=title,
            description=description,
            original_title=item.title,
            original_description=item.description,
        )

    def translate_items(self, items: Iterable[Item]) -> list[Item]:
        translated = [self.translate_item(item) for item in items]
        self.logger.info(
            f"Translated {sum(1 for item in translated if item.original_title is not None)} items",
            target_language=self.config.target_language,
        )
        return translated
