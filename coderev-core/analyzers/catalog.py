"""
The six analyzers run against every file, in display order.
"""
from .base import Analyzer

CODE_QUALITY = Analyzer(
    name="code_quality",
    topic="code quality issues",
    focus=(
        "Code style and consistency",
        "Naming conventions",
        "Code structure and organization",
        "Best practices violations",
        "Readability issues",
        "Potential bugs from poor practices",
    ),
    default_score=85,
    issue_keywords=("issue", "problem", "should", "avoid"),
    suggestion_keywords=("consider", "recommend", "refactor", "rename"),
)

SECURITY = Analyzer(
    name="security",
    topic="security vulnerabilities",
    focus=(
        "Input validation and sanitization",
        "SQL injection risks",
        "XSS vulnerabilities",
        "Authentication/authorization issues",
        "Sensitive data exposure",
        "Unsafe API usage",
        "Cryptographic weaknesses",
    ),
    default_score=90,
    issue_keywords=("security", "vulnerability", "injection", "xss", "auth"),
    suggestion_keywords=("secure", "encrypt", "validate", "sanitize", "protect"),
    include_framework=True,
)

PERFORMANCE = Analyzer(
    name="performance",
    topic="performance issues",
    focus=(
        "Inefficient algorithms or data structures",
        "Unnecessary computations or loops",
        "Memory leaks or excessive memory usage",
        "Blocking operations that could be async",
        "Large data processing without optimization",
        "Database query inefficiencies",
        "UI rendering performance issues",
    ),
    default_score=80,
    issue_keywords=("slow", "inefficient", "memory", "loop", "blocking"),
    suggestion_keywords=("cache", "optimize", "memoize", "batch", "async"),
    include_framework=True,
)

MAINTAINABILITY = Analyzer(
    name="maintainability",
    topic="maintainability issues",
    focus=(
        "Code complexity and cognitive load",
        "Technical debt indicators",
        "Code duplication",
        "Poor abstraction or coupling",
        "Hard-coded values",
        "Lack of separation of concerns",
        "Difficult-to-understand logic",
    ),
    default_score=75,
    issue_keywords=("complex", "duplicat", "coupling", "hard-coded", "debt"),
    suggestion_keywords=("extract", "simplify", "split", "modular"),
)

TESTING = Analyzer(
    name="testing",
    topic="testing considerations",
    focus=(
        "Testability of the code structure",
        "Missing test scenarios",
        "Hard-to-test code patterns",
        "Test coverage gaps",
        "Mock/stub requirements",
        "Integration testing needs",
        "Edge cases not covered",
    ),
    default_score=70,
    issue_keywords=("untested", "coverage", "edge case", "hard to test"),
    suggestion_keywords=("add test", "mock", "unit test", "integration test"),
    include_framework=True,
)

DOCUMENTATION = Analyzer(
    name="documentation",
    topic="documentation needs",
    focus=(
        "Missing function/class documentation",
        "Complex logic without comments",
        "Public API without docstrings or type hints",
        "Magic numbers or unclear constants",
        "Complex algorithms needing explanation",
        "API endpoints without documentation",
        "Configuration options needing documentation",
    ),
    default_score=60,
    issue_keywords=("undocumented", "missing doc", "no comment", "magic number"),
    suggestion_keywords=("document", "docstring", "comment", "explain"),
)

ANALYZERS: tuple[Analyzer, ...] = (
    CODE_QUALITY,
    SECURITY,
    PERFORMANCE,
    MAINTAINABILITY,
    TESTING,
    DOCUMENTATION,
)

ANALYZER_NAMES = tuple(analyzer.name for analyzer in ANALYZERS)


def get_analyzer(name: str) -> Analyzer:
    for analyzer in ANALYZERS:
        if analyzer.name == name:
            return analyzer
    raise KeyError(f"Unknown analyzer: {name}")


def build_analysis_jobs(client, enabled: tuple[str, ...] | list[str] | None = None) -> list:
    """JobDescriptors for the enabled analyzers, in catalog order"""
    return [
        analyzer.as_job(client)
        for analyzer in ANALYZERS
        if enabled is None or analyzer.name in enabled
    ]
