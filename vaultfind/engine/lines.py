"""Line splitting shared by search, replace and the editor buffer."""

import re
from typing import List

# CRLF must come first so it is treated as a single terminator.
LINE_TERMINATOR = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> List[str]:
    """
    Split text on CRLF, LF and lone CR.

    Terminators are dropped. Element 0 is line number 1. An empty string
    yields a single empty line.
    """
    return LINE_TERMINATOR.split(text)


def count_line_breaks(text: str) -> int:
    return len(LINE_TERMINATOR.findall(text))
