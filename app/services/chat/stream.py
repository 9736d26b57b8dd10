"""Server-Sent Events parsing for streamed chat completions."""
import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"


def parse_delta(payload: str) -> Optional[str]:
    """Text content of one `chat.completion.chunk` payload, if any."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning(f"[SSE] Skipping malformed event payload: {payload[:200]}")
        return None
    try:
        content = data["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    if isinstance(content, str) and content:
        return content
    return None


async def iter_sse_deltas(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield the text deltas of an OpenAI-style completion stream.

    Blank lines, `:` comments and fields other than `data:` are skipped.
    The stream ends at `data: [DONE]` or when the lines run out.
    """
    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line or line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if field != "data":
            continue
        value = value.strip()
        if value == DONE_MARKER:
            return

        content = parse_delta(value)
        if content is not None:
            yield content
