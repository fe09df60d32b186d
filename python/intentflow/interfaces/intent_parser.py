"""Interface for the external intent parser.

The parser turns free text into a typed :class:`Intent`.  It lives outside
this package; the orchestrator only consumes its output.
"""

from dataclasses import dataclass
from typing import Protocol, Union

from intentflow.models.intent import Intent


@dataclass(frozen=True)
class ParseFailure:
    """The parser could not produce an intent."""

    reason: str
    confidence: float = 0.0


ParseResult = Union[Intent, ParseFailure]


class IntentParser(Protocol):
    """Text-to-intent parser."""

    async def parse(self, text: str) -> ParseResult:
        """Parse *text*.

        Returns:
            The parsed intent, or a ParseFailure with the reason
        """
        ...
