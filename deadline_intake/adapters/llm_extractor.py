"""LLM extractor — ExtractorPort implementation backed by `complete()`.

Builds the extraction/refinement prompts, sends them to the configured
provider and decodes the JSON object in the reply. Documents are passed as
text; no OCR or page fetching happens here.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from deadline_intake.core import llm
from deadline_intake.core.errors import ExtractionError, StructuralError
from deadline_intake.core.validators import parse_payload_text
from deadline_intake.data.models import ExtractionConfig, RefinementRequest, UploadedDocument

logger = logging.getLogger(__name__)

_MAX_PROMPT_CHARS = 50_000
_MAX_CODE_FENCES = 10
_MAX_URLS = 20

_CONTEXT_SUFFIX = """

Today's date is {today}. Interpret dates without an explicit offset in the {timezone} timezone."""

_DOCUMENT_PROMPT = """\
CONTENT TO ANALYZE:
Filename: {filename}
File Type: {file_type}
Content:
{content}

Extract all deadline-related information from this content. Focus on assignment due dates, project deadlines, exam dates, and other important academic dates."""

_DOCUMENTS_PROMPT = """\
The following {count} documents belong to the same course. Cross-reference them: a schedule in one may give the date for an assignment described in another.

{sections}

Extract all deadline-related information across these documents. Report each deadline once."""

_WEBSITE_PROMPT = """\
WEBSITE TO ANALYZE:
URL: {url}

Extract all deadline-related information from this webpage. Focus on assignment due dates, project deadlines, exam dates, and other important academic dates."""

_REFINEMENT_PROMPT = """\
ORIGINAL SUGGESTION TO REFINE:
Title: {title}
Due Date: {due}
Confidence: {confidence}
Source: {source}
Provenance: {provenance}

USER FEEDBACK:
{feedback}

Please refine the original suggestion based on the user feedback. Update any fields that need correction while maintaining the same JSON structure, returning exactly one entry in "suggestions"."""


def check_prompt(prompt: str) -> list[str]:
    """Advisory size/complexity warnings for a prompt. Never blocks the call."""
    warnings: list[str] = []
    if len(prompt) > _MAX_PROMPT_CHARS:
        warnings.append("Prompt is very long (>50k chars), may hit token limits")
    if prompt.count("```") > _MAX_CODE_FENCES:
        warnings.append("Prompt contains many code blocks, may affect parsing")
    if prompt.count("http") > _MAX_URLS:
        warnings.append("Prompt contains many URLs, may affect processing")
    return warnings


def _document_section(document: UploadedDocument) -> str:
    return _DOCUMENT_PROMPT.format(
        filename=document.filename,
        file_type=document.file_type,
        content=document.content,
    )


class LLMExtractor:
    """Extraction backend that prompts the configured LLM provider."""

    def _system_prompt(self, config: ExtractionConfig) -> str:
        return config.prompt_template + _CONTEXT_SUFFIX.format(
            today=date.today().isoformat(), timezone=config.timezone,
        )

    async def _run(self, user_message: str, config: ExtractionConfig) -> Any:
        for warning in check_prompt(user_message):
            logger.warning("Prompt check: %s", warning)

        try:
            raw_text = await llm.complete(
                system=self._system_prompt(config),
                user_message=user_message,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                model=config.model,
            )
        except Exception as exc:
            logger.error("LLM extraction call failed: %s", exc)
            raise ExtractionError(f"LLM extraction call failed: {exc}") from exc

        logger.debug("LLM raw response: %s", raw_text)
        try:
            return parse_payload_text(raw_text)
        except StructuralError:
            logger.error("Unparsable LLM response: '%s'", raw_text)
            raise

    async def extract_document(self, document: UploadedDocument, config: ExtractionConfig) -> Any:
        return await self._run(_document_section(document), config)

    async def extract_documents(
        self, documents: list[UploadedDocument], config: ExtractionConfig,
    ) -> Any:
        sections = "\n\n".join(
            f"--- DOCUMENT {i + 1} ---\n{_document_section(d)}" for i, d in enumerate(documents)
        )
        return await self._run(
            _DOCUMENTS_PROMPT.format(count=len(documents), sections=sections), config,
        )

    async def extract_website(self, url: str, config: ExtractionConfig) -> Any:
        return await self._run(_WEBSITE_PROMPT.format(url=url), config)

    async def refine(self, request: RefinementRequest, config: ExtractionConfig) -> Any:
        prompt = _REFINEMENT_PROMPT.format(
            title=request.title,
            due=request.due.isoformat(),
            confidence=request.confidence,
            source=request.source.value,
            provenance=request.provenance,
            feedback=request.feedback,
        )
        return await self._run(prompt, config)
