"""Prompt templates for direct (non-backend) keyword and answer generation."""

import json
import re

from models.search_types import DocumentContent

DEFAULT_RESPONSE_GUIDELINES = """FORMAT YOUR RESPONSE AS MARKDOWN:
- Use ## and ### for section headings (not #)
- For code blocks use triple backticks with a language specification
- Use standard markdown for links: [text](url)
- NEVER use HTML tags - use only pure markdown syntax
- Preserve code examples exactly as they appear in the documentation"""

KEYWORDS_SYSTEM_PROMPT = """You turn a documentation question into search queries for a full-text documentation index.
Return ONLY a JSON array of short search query strings, most specific first. No prose, no keys, no code fences."""

NOT_FOUND_SENTENCE = "I couldn't find this in the provided documentation."

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.I)


def build_keywords_prompt(query: str, max_keywords: int, system_context: str = "") -> str:
    lines = [f'Question: "{query}"', f"Return at most {max_keywords} search queries."]
    if system_context:
        lines.append(f"Product context: {system_context}")
    return "\n".join(lines)


def parse_json_array(text: str):
    """
    Decode a model reply that should be a JSON array.

    Code fences are tolerated. Returns whatever JSON value was decoded; the
    caller decides whether it is acceptable.

    Raises:
        ValueError: If the reply is not valid JSON
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    return json.loads(cleaned)


def create_system_prompt(site_name: str = "this documentation", system_context: str = "") -> str:
    prompt = f"""You are a helpful assistant specialized in answering questions about {site_name}.
Your responses should be based solely on the documentation content provided to you.

Guidelines:
- Be concise but comprehensive
- Include code examples from the documentation when relevant, unmodified
- Cite the pages you used as markdown links
- If the information is not available in the provided context, reply: "{NOT_FOUND_SENTENCE}"

{DEFAULT_RESPONSE_GUIDELINES}"""
    if system_context:
        prompt += f"\n\nProduct context: {system_context}"
    return prompt


def create_user_prompt(query: str, documents: list[DocumentContent]) -> str:
    blocks = []
    for index, doc in enumerate(documents, start=1):
        blocks.append(
            f"--- START OF DOCUMENT {index}: {doc.title} ---\n"
            f"URL: {doc.url}\n\n{doc.content}\n"
            f"--- END OF DOCUMENT {index} ---"
        )
    sources = "\n".join(
        f"Source {index}: {doc.title}: {doc.url}" for index, doc in enumerate(documents, start=1)
    )
    context = "\n\n".join(blocks)
    return (
        f"Here is the relevant documentation content:\n\n{context}\n\n"
        f"Source references:\n{sources}\n\n"
        f'Based on the documentation above, please answer the following question:\n\n"{query}"'
    )
