"""
Content classifiers: decide whether a submission may skip human moderation.

Every strategy implements `async classify(document) -> bool` and never raises:
any failure is logged and reported as False ("when unsure, do not approve").
The strategy is picked once per process from configuration by
`build_classifier`.
"""

import asyncio
import logging
from typing import Any, FrozenSet, Optional, Protocol, Tuple

from openai import AsyncOpenAI

from papervault.classification.pdf_text import extract_text
from papervault.core.config import Settings
from papervault.core.exceptions import ClassifierFailure
from papervault.models.paper import SubmittedDocument

logger = logging.getLogger(__name__)

EXAM_KEYWORDS: Tuple[str, ...] = (
    "time",
    "full marks",
    "maximum marks",
    "duration",
    "semester",
    "examination",
    "exam",
    "question paper",
    "paper code",
    "university",
    "instructions",
)


class ContentClassifier(Protocol):
    async def classify(self, document: SubmittedDocument) -> bool:
        ...


def matched_keywords(
    text: str, keywords: Tuple[str, ...] = EXAM_KEYWORDS
) -> FrozenSet[str]:
    """Distinct keywords occurring (as substrings) in the lower-cased text."""
    lowered = text.lower()
    return frozenset(word for word in keywords if word in lowered)


class KeywordClassifier:
    """Offline heuristic over the first characters of the PDF text."""

    def __init__(self, text_limit: int = 1500, min_matches: int = 2):
        self.text_limit = text_limit
        self.min_matches = min_matches

    async def classify(self, document: SubmittedDocument) -> bool:
        try:
            text = await asyncio.to_thread(
                extract_text, document.content, self.text_limit
            )
        except ClassifierFailure as e:
            logger.warning(f"PDF parse failed, leaving submission for review: {e}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected error extracting PDF text: {e}")
            return False

        found = matched_keywords(text)
        decision = len(found) >= self.min_matches
        logger.info(
            f"Keyword classifier matched {len(found)} keyword(s) "
            f"{sorted(found)}; auto-approve={decision}"
        )
        return decision


OPENAI_SYSTEM_PROMPT = (
    "You moderate uploads to a university question-paper archive. "
    "Given the metadata and the opening text of an uploaded PDF, decide whether "
    "it is clearly a genuine examination question paper. "
    "Answer with exactly one word: APPROVE if you are confident it is a genuine "
    "question paper matching the metadata, otherwise PENDING so a human reviews it. "
    "Never answer anything else. No need for explanation."
)


def build_openai_prompt(document: SubmittedDocument, excerpt: str) -> str:
    meta = document.metadata
    return (
        f"category: '{meta.category}'\n"
        f"subject: '{meta.subject}'\n"
        f"semester: '{meta.semester}'\n"
        f"year: '{meta.year}'\n"
        f"text: '{excerpt}'\n"
    )


class OpenAIClassifier:
    """Delegates the decision to a chat-completions model.

    Only an explicit APPROVE answer is positive; anything else, including any
    network or API failure, is negative.
    """

    def __init__(
        self,
        client: Any,
        model: str = "gpt-4o-mini",
        text_limit: int = 1500,
    ):
        self.client = client
        self.model = model
        self.text_limit = text_limit

    async def aclose(self) -> None:
        """Closes the HTTP client behind the OpenAI SDK."""
        await self.client.close()

    async def _excerpt(self, document: SubmittedDocument) -> str:
        try:
            return await asyncio.to_thread(
                extract_text, document.content, self.text_limit
            )
        except ClassifierFailure as e:
            # metadata alone still goes to the model
            logger.warning(f"Sending metadata only, PDF text unavailable: {e}")
            return ""

    async def classify(self, document: SubmittedDocument) -> bool:
        try:
            excerpt = await self._excerpt(document)
            chat = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": OPENAI_SYSTEM_PROMPT},
                    {"role": "user", "content": build_openai_prompt(document, excerpt)},
                ],
                temperature=0,
                max_tokens=5,
            )
            answer = (chat.choices[0].message.content or "").strip().upper()
        except Exception as e:
            logger.warning(f"OpenAI classification failed, leaving for review: {e}")
            return False

        decision = answer == "APPROVE"
        if answer not in ("APPROVE", "PENDING"):
            logger.warning(f"Unexpected classifier answer {answer!r}; treating as PENDING")
        logger.info(f"OpenAI classifier answered {answer!r}; auto-approve={decision}")
        return decision


class NeverApproveClassifier:
    """Sends every submission to human moderation."""

    async def classify(self, document: SubmittedDocument) -> bool:
        return False


def build_classifier(
    settings: Settings, openai_client: Optional[Any] = None
) -> ContentClassifier:
    """Builds the classifier selected by `CLASSIFIER_STRATEGY`."""
    strategy = settings.classifier_strategy
    if strategy == "keyword":
        return KeywordClassifier(
            text_limit=settings.classifier_text_limit,
            min_matches=settings.classifier_min_keyword_matches,
        )
    if strategy == "openai":
        if openai_client is None:
            if not settings.openai_api_key:
                logger.warning(
                    "CLASSIFIER_STRATEGY=openai but OPENAI_API_KEY is not set; "
                    "falling back to manual moderation for every upload."
                )
                return NeverApproveClassifier()
            openai_client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.openai_timeout_seconds,
            )
        return OpenAIClassifier(
            client=openai_client,
            model=settings.openai_model,
            text_limit=settings.classifier_text_limit,
        )
    return NeverApproveClassifier()
