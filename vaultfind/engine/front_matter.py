"""Front matter handling for notes."""

import re
from dataclasses import dataclass
from typing import Any, Dict

import frontmatter
import yaml
from loguru import logger

from .lines import count_line_breaks


# Opening `---` line at the very start, optional body, closing `---` line
# followed by a newline. Lazy, so only the first closing line ends the block.
FRONT_MATTER = re.compile(
    r"\A---[ \t]*(?:\r\n|\r|\n)(?:.*?(?:\r\n|\r|\n))?---[ \t]*(?:\r\n|\r|\n)",
    re.DOTALL
)


@dataclass(frozen=True)
class FrontMatterSpan:
    """Extent of a leading front matter block."""
    length: int = 0       # characters
    line_count: int = 0   # whole lines, terminators included

    @property
    def present(self) -> bool:
        return self.length > 0


def front_matter_span(text: str) -> FrontMatterSpan:
    match = FRONT_MATTER.match(text)
    if match is None:
        return FrontMatterSpan()
    block = match.group(0)
    return FrontMatterSpan(length=len(block), line_count=count_line_breaks(block))


def strip_front_matter(text: str) -> str:
    """Remove a single leading front matter block, if there is one."""
    span = front_matter_span(text)
    return text[span.length:]


def read_properties(text: str) -> Dict[str, Any]:
    """
    Parse the front matter block into a mapping.

    Malformed YAML yields an empty mapping; properties are only used for
    display, never for locating matches.
    """
    if not front_matter_span(text).present:
        return {}
    try:
        return dict(frontmatter.loads(text).metadata)
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring unparsable front matter: {e}")
        return {}
