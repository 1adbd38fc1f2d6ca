"""Prompt templates

Pure string templating for the research prompts the MCP server offers.
No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional


def search_legal_precedents(topic: str, jurisdiction: Optional[str] = None) -> str:
    where = f" in jurisdiction {jurisdiction}" if jurisdiction else ""
    return (
        f'Please search for relevant Swiss legal precedents about "{topic}"{where} '
        "and analyze the most significant findings. For each relevant case, provide a "
        "summary of the facts, the legal reasoning, and the outcome."
    )


def compare_jurisdictions(legal_issue: str, cantons: str) -> str:
    canton_list = '", "'.join(c.strip() for c in cantons.split(",") if c.strip())
    return (
        f'I\'d like to understand how different Swiss cantons have ruled on the issue of "{legal_issue}". '
        f'Please search for relevant court decisions in these cantons: "{canton_list}". '
        "Then compare and contrast the approaches, highlighting any significant differences "
        "in legal interpretation or application."
    )


def court_decisions(court: str, timeframe: Optional[str] = None) -> str:
    timeframe = timeframe or "1 year"
    return (
        f"Please find and list the most important decisions from {court} within the last {timeframe}. "
        "For each decision, provide the case number, date, a brief summary of the legal issue, and outcome."
    )


def legal_research(
    topic: str,
    jurisdiction: Optional[str] = None,
    keywords: Optional[str] = None,
) -> str:
    search_query = " ".join(part for part in (topic, jurisdiction, keywords) if part)
    lines = [f'Please help me research the following legal topic: "{topic}"', ""]
    if jurisdiction:
        lines.append(f"Focus on jurisdiction: {jurisdiction}")
    if keywords:
        lines.append(f"Additional keywords: {keywords}")
    lines += [
        "",
        "Please search for relevant case law and provide an analysis of the key legal principles, "
        "precedents, and trends. Structure your response to include:",
        "",
        "1. Overview of the legal issue",
        "2. Key cases and their holdings",
        "3. Analysis of trends or developments",
        "4. Practical implications",
        "",
        f'Use the search_decisions tool to find relevant cases with this query: "{search_query}"',
    ]
    return "\n".join(lines)


def case_analysis(
    signature: str,
    spider: Optional[str] = None,
    focus: Optional[str] = None,
) -> str:
    source = f" from {spider}" if spider else ""
    lines = [f'Please analyze the legal case with signature "{signature}"{source}.', ""]
    if focus:
        lines += [f"Please focus particularly on: {focus}", ""]
    lines += [
        "Use the get_document tool to retrieve the case details and provide a comprehensive "
        "analysis including:",
        "",
        "1. Case summary and key facts",
        "2. Legal issues presented",
        "3. Court's reasoning and holding",
        "4. Significance and implications",
        "5. Related precedents or legal principles",
        "",
        "Please start by retrieving the case metadata and content.",
    ]
    return "\n".join(lines)


@dataclass(frozen=True)
class PromptArgument:
    name: str
    description: str
    required: bool = True


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    description: str
    render: Callable[..., str]
    # prompt argument name -> keyword of `render`
    arguments: tuple[PromptArgument, ...] = field(default_factory=tuple)
    keywords: dict[str, str] = field(default_factory=dict)


PROMPTS: dict[str, PromptTemplate] = {
    p.name: p
    for p in (
        PromptTemplate(
            name="search-legal-precedents",
            description="Find relevant precedents on a specific legal topic",
            render=search_legal_precedents,
            arguments=(
                PromptArgument("topic", "Legal topic or keywords to search for"),
                PromptArgument("jurisdiction", "Optional: Canton code or court to restrict search", False),
            ),
        ),
        PromptTemplate(
            name="compare-jurisdictions",
            description="Compare rulings on a specific legal issue across different cantons",
            render=compare_jurisdictions,
            arguments=(
                PromptArgument("legalIssue", "Legal issue to compare"),
                PromptArgument("cantons", "Comma-separated list of canton codes to compare (e.g., 'ZH,BE,GE')"),
            ),
            keywords={"legalIssue": "legal_issue"},
        ),
        PromptTemplate(
            name="court-decisions",
            description="Retrieve recent decisions from a specific court",
            render=court_decisions,
            arguments=(
                PromptArgument("court", "Court name or identifier"),
                PromptArgument("timeframe", "Timeframe to search within (e.g., '6 months', '2 years'), default 1 year", False),
            ),
        ),
        PromptTemplate(
            name="legal-research",
            description="Template for conducting legal research with case law search",
            render=legal_research,
            arguments=(
                PromptArgument("topic", "Legal topic or question to research"),
                PromptArgument("jurisdiction", "Specific jurisdiction or court", False),
                PromptArgument("keywords", "Additional keywords for search", False),
            ),
        ),
        PromptTemplate(
            name="case-analysis",
            description="Template for analyzing specific legal cases",
            render=case_analysis,
            arguments=(
                PromptArgument("signature", "Case signature to analyze (e.g., CH_BGer_005_5F-23-2025_2025-07-01)"),
                PromptArgument("spider", "Court/spider name (e.g., CH_BGer)", False),
                PromptArgument("focus", "Specific aspect to focus on", False),
            ),
        ),
    )
}


def render_prompt(name: str, arguments: dict[str, str] | None = None) -> str:
    """
    Render a registered prompt.

    Raises:
        ValueError: unknown prompt or missing required argument
    """
    template = PROMPTS.get(name)
    if template is None:
        raise ValueError(f"Unknown prompt: {name}")

    args = arguments or {}
    kwargs: dict[str, Optional[str]] = {}
    for arg in template.arguments:
        value = args.get(arg.name)
        value = str(value).strip() if value is not None else ""
        if arg.required and not value:
            raise ValueError(f"Missing required argument '{arg.name}' for prompt {name}")
        kwargs[template.keywords.get(arg.name, arg.name)] = value or None

    return template.render(**kwargs)
