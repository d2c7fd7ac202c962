# flowengine/providers/placeholder.py
"""
Placeholder responses.

Used by the community-inference adapter when no credential is configured,
when every model fails, or when a model returns too little text. The
default strategy matches keywords against the prompt and fills a template,
so the same prompt always produces the same non-empty text.
"""
import re
from typing import List, Optional, Protocol, Tuple


class PlaceholderStrategy(Protocol):
    def generate(self, prompt: str, system_prompt: str = "") -> str:
        ...


class KeywordPlaceholderStrategy:
    """Rule-based placeholder text: first matching pattern wins."""

    def __init__(self, patterns: Optional[List[Tuple[str, str]]] = None):
        # (regex, template) - template may use {topic}
        self.patterns: List[Tuple[str, str]] = patterns or [
            (
                r"\b(blog|article|post about|outline)\b",
                "# {topic}\n\n"
                "## Introduction\nAn overview of {topic} and why it matters.\n\n"
                "## Key Points\n- What {topic} is\n- How it works in practice\n- Common pitfalls\n\n"
                "## Conclusion\nA short recap of {topic} with a call to action.",
            ),
            (
                r"\b(email|e-mail|mail|newsletter)\b",
                "Subject: {topic}\n\nHello,\n\n"
                "I wanted to reach out regarding {topic}. "
                "Please let me know a good time to discuss the details.\n\nBest regards",
            ),
            (
                r"\b(summar\w*|tl;?dr|recap)\b",
                "Summary: {topic}. The main idea is captured above; "
                "key details and next steps can be expanded on request.",
            ),
            (
                r"\b(code|function|script|python|javascript|bug)\b",
                "Here is an approach for {topic}:\n"
                "1. Break the problem into small functions.\n"
                "2. Write a test for each case.\n"
                "3. Implement and refactor until the tests pass.",
            ),
            (
                r"\b(tweet|social|instagram|linkedin|caption)\b",
                "Excited to share some thoughts on {topic}! "
                "What is your take? #ideas #community",
            ),
            (
                r"\?\s*$|^\s*(what|why|how|when|who|where|can|should|is|are)\b",
                "Great question about {topic}. In short, it depends on your goals; "
                "start with the basics, then refine based on what you learn.",
            ),
        ]
        self.default_template = (
            "Here are some thoughts on {topic}: it is a broad subject, "
            "so a good next step is to narrow down the specific aspect you care about most."
        )

    def generate(self, prompt: str, system_prompt: str = "") -> str:
        topic = _topic(prompt)
        text = prompt.lower()
        for pattern, template in self.patterns:
            if re.search(pattern, text):
                return template.format(topic=topic)
        return self.default_template.format(topic=topic)


def _topic(prompt: str, limit: int = 80) -> str:
    topic = " ".join(prompt.split())
    if not topic:
        return "your request"
    if len(topic) > limit:
        topic = topic[:limit].rsplit(" ", 1)[0] + "..."
    return topic
