"""
Text Utility Tool
=================

Local text helpers the model can call without any network access:

- summarize: the first five sentences of the text
- keywords: the eight most frequent words longer than four characters
- sentiment: a signed score from fixed positive/negative word lists
- translate: a placeholder that tags the text with the target language

All operations are deterministic: the same input always gives the same
output.
"""

import re
from collections import Counter

from agentflow.tools import ToolSpec
from agentflow.utils.errors import UnknownOperationError
from agentflow.utils.logger import Logger

logger = Logger("TextUtility")

OPERATIONS = ("summarize", "keywords", "sentiment", "translate")

SUMMARY_SENTENCES = 5
MAX_KEYWORDS = 8
MIN_KEYWORD_LENGTH = 5

POSITIVE_WORDS = ("good", "great", "excellent", "positive", "benefit", "success")
NEGATIVE_WORDS = ("bad", "poor", "terrible", "negative", "risk", "failure")

_SENTENCE_BREAK = re.compile(r"[.!?]\s+")
_NON_WORD = re.compile(r"[^a-z0-9\s]")


def summarize(text: str) -> str:
    """
    Return the first five sentences, joined with ". " and ending in ".".

    Text without any sentence content is returned unchanged.
    """
    segments = [s.strip() for s in _SENTENCE_BREAK.split(text.strip())]
    segments = [s for s in segments if s][:SUMMARY_SENTENCES]
    if not segments:
        return text

    # The final segment keeps its terminator when the text ends there
    segments[-1] = segments[-1].rstrip(".!?")
    return ". ".join(segments) + "."


def keywords(text: str) -> list[str]:
    """
    Rank words longer than four characters by frequency.

    Ties keep the order in which the words first appear.
    """
    words = _NON_WORD.sub("", text.lower()).split()
    freq = Counter(w for w in words if len(w) >= MIN_KEYWORD_LENGTH)
    ranked = sorted(freq.items(), key=lambda item: -item[1])
    return [word for word, _ in ranked[:MAX_KEYWORDS]]


def sentiment(text: str) -> dict:
    """Score +1 per positive word present, -1 per negative word present."""
    lowered = text.lower()
    score = sum(1 for word in POSITIVE_WORDS if word in lowered)
    score -= sum(1 for word in NEGATIVE_WORDS if word in lowered)

    if score > 0:
        label = "positive"
    elif score < 0:
        label = "negative"
    else:
        label = "neutral"
    return {"score": score, "label": label}


def translate(text: str, target_lang: str = "en") -> str:
    # Offline placeholder, not a real translation
    return f"[{target_lang}] {text}"


def run_operation(operation: str, text: str, target_lang: str = "en"):
    """
    Dispatch one text operation.

    Raises:
        UnknownOperationError: If operation is not one of OPERATIONS
    """
    if operation == "summarize":
        return summarize(text)
    if operation == "keywords":
        return keywords(text)
    if operation == "sentiment":
        return sentiment(text)
    if operation == "translate":
        return translate(text, target_lang)
    raise UnknownOperationError(operation)


async def _text_utility(params: dict) -> dict:
    operation = params.get("operation")
    text = params.get("text")
    target_lang = params.get("target_lang") or "en"

    if not isinstance(text, str):
        raise ValueError("text must be a string")

    result = run_operation(operation, text, target_lang)
    logger.debug(f"text_utility/{operation} done", {"input_chars": len(text)})
    return {"result": result}


def create_text_utility_tool() -> ToolSpec:
    return ToolSpec(
        name="text_utility",
        description="Local text utilities: summarize, keywords, sentiment, translate",
        parameters={
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": list(OPERATIONS),
                    "description": "Which text operation to run"
                },
                "text": {
                    "type": "string",
                    "description": "The text to process"
                },
                "target_lang": {
                    "type": "string",
                    "description": "Target language code for translate",
                    "default": "en"
                }
            },
            "required": ["operation", "text"]
        },
        handler=_text_utility
    )
