"""
Deadline Intake — Entry Point.

`python main.py syllabus.txt [more.txt ...]` extracts deadline suggestions
from text documents with the configured LLM and logs what was found.
"""

import asyncio
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from deadline_intake.adapters.llm_extractor import LLMExtractor
from deadline_intake.core.suggestion_service import SuggestionService
from deadline_intake.data.models import UploadedDocument

logger = logging.getLogger("deadline_intake")


async def main(paths: list[str]) -> None:
    documents = [
        UploadedDocument(
            filename=Path(p).name,
            content=Path(p).read_text(encoding="utf-8"),
            file_type=Path(p).suffix.lstrip(".") or "txt",
        )
        for p in paths
    ]
    service = SuggestionService(extractor=LLMExtractor())
    suggestions = await service.extract_from_documents(documents)

    for s in suggestions:
        logger.info(
            "%s | due %s | confidence %s | warnings: %s",
            s.title, s.due.isoformat(), s.confidence, "; ".join(s.warnings) or "none",
        )


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python main.py FILE [FILE ...]", file=sys.stderr)
        sys.exit(2)
    asyncio.run(main(sys.argv[1:]))
