"""Prompt construction and reply parsing shared by every backend."""

from __future__ import annotations

from typing import List

from tagcoder.models import Tag

NO_MATCHES = "NO_MATCHES"

PROMPT_TEMPLATE = """You are analyzing a document for qualitative coding. Please identify and extract relevant quotes from the document that closely relate to the following tag:

Tag: "{name}"
Description: "{description}"

Document:
{document}

Instructions:
1. Carefully read through the document
2. Identify any passages, sentences, or phrases that are closely relevant to the tag "{name}"
3. Extract these relevant quotes exactly as they appear in the document.
4. Return only the relevant quotes, one per line
5. If no relevant content is found, return "{sentinel}"

Important: Only return direct quotes from the document. Do not paraphrase or summarize. Do not, under any circumstances, make up quotes that are not present in the document."""


def build_prompt(document_text: str, tag: Tag) -> str:
    # Plain replace: document text may contain braces.
    return (
        PROMPT_TEMPLATE.replace("{name}", tag.name)
        .replace("{description}", tag.description)
        .replace("{sentinel}", NO_MATCHES)
        .replace("{document}", document_text)
    )


def parse_quotes(content: str | None) -> List[str]:
    """Split a raw reply into quotes.

    The sentinel or an empty reply means no matches. Otherwise every
    non-blank line that does not start with the sentinel is a quote, in
    reply order. Quotes are not checked against the source text.
    """
    text = (content or "").strip()
    if not text or text == NO_MATCHES:
        return []

    quotes = []
    for line in text.split("\n"):
        line = line.strip()
        if line and not line.startswith(NO_MATCHES):
            quotes.append(line)
    return quotes
