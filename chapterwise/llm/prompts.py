"""Prompt template library for the chapter subdivision stage.

Responsibilities:
- Centralize prompt construction for chapter subdivision requests.
- Keep prompts deterministic for a given chapter text, title, and target count.
"""

from __future__ import annotations

import json


class PromptLibrary:
    """Build prompt strings for chapter subdivision."""

    def subdivision_system_prompt(self) -> str:
        """Return deterministic system prompt for verbatim chapter subdivision."""

        return (
            "You are an expert at dividing chapters into subchapters. Divide the provided "
            "chapter content into the specified number of subchapters, ensuring each part "
            "contains the exact original text without modification or summarization."
        )

    def subdivision_prompt(
        self,
        page_scoped_text: str,
        chapter_title: str,
        target_count: int,
    ) -> str:
        """Return the user prompt asking for an exact `target_count`-way split."""

        if target_count < 1:
            raise ValueError("target_count must be at least 1.")

        approximate_chars = len(page_scoped_text) // target_count
        return (
            f"Divide this chapter into exactly {target_count} subchapters.\n"
            "\n"
            "RULES:\n"
            f"1. Split the text into {target_count} parts of similar length.\n"
            "2. Copy the text EXACTLY as it appears, word for word.\n"
            "3. Write a descriptive title for each subchapter.\n"
            "4. Do NOT summarize, paraphrase, or change the original text.\n"
            f"5. Each subchapter should have approximately {approximate_chars} characters.\n"
            "\n"
            f"CHAPTER TITLE: {chapter_title}\n"
            "\n"
            "CONTENT TO DIVIDE:\n"
            f"{page_scoped_text}\n"
            "\n"
            "REQUIRED JSON FORMAT:\n"
            f"{self._schema_example(chapter_title, target_count)}\n"
            "\n"
            "IMPORTANT:\n"
            "- Respond ONLY with valid JSON.\n"
            "- Do NOT wrap the response in Markdown code fences such as ```json.\n"
            f"- Produce exactly {target_count} subchapters.\n"
            "- Copy ALL of the text without omitting anything.\n"
            "- Every word of the original content must appear in some subchapter."
        )

    @staticmethod
    def _schema_example(chapter_title: str, target_count: int) -> str:
        """Render the literal response schema with two example subchapters."""

        example = {
            "capitulo": {
                "titulo": chapter_title,
                "Total_Subcapitulos": target_count,
                "subtemas": [
                    {
                        "title": f"Descriptive title of subchapter {position}",
                        "texto": "Exact subchapter text copied word for word",
                        "descripcion": "Short description of this subchapter's content",
                    }
                    for position in (1, 2)
                ],
            }
        }
        return json.dumps(example, ensure_ascii=False, indent=2)
