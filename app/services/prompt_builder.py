"""Summary prompt rendering."""

from typing import Dict, List

from app.schemas import SummaryOptions

ROLE_PREAMBLE = "You are a precise document summarization assistant."

LENGTH_GUIDANCE: Dict[str, str] = {
    "short": "Keep it brief (about 3-5 bullet points total).",
    "medium": "Provide moderate detail (about 6-10 bullet points total).",
    "long": "Provide detailed coverage with clear sectioning and complete key points.",
}

REQUIRED_STRUCTURE = [
    "1. Title heading",
    "2. Key points (bulleted)",
    "3. Action items or conclusions",
]

RULES = [
    "- Keep facts grounded in the source text.",
    "- Do not add external facts.",
    "- Be clear and concise.",
]


def _section(heading: str, lines: List[str]) -> List[str]:
    return [f"## {heading}", *lines, ""]


def build_summary_prompt(source_text: str, options: SummaryOptions) -> str:
    """Render the Markdown-summary instruction for ``source_text``.

    The source text goes in last and verbatim; it is not escaped, so
    Markdown headings inside it read like part of the instruction.
    """
    requirements = [
        f"- Language: {options.language}",
        f"- Tone: {options.tone}",
        f"- Length: {options.length}",
        f"- Length guidance: {LENGTH_GUIDANCE[options.length]}",
        "- Output format: valid Markdown only",
    ]

    lines = [ROLE_PREAMBLE, ""]
    lines += _section("Output Requirements", requirements)
    lines += _section("Required Structure", REQUIRED_STRUCTURE)
    lines += _section("Rules", RULES)
    lines += ["## Source Text", source_text]
    return "\n".join(lines)
