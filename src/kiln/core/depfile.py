""" Reader for the Makefile-style dependency files that compilers emit with `-MD -MF <file>`:

```
build/obj/app/src/main.o: src/main.cpp src/app.h \\
  /usr/include/stdio.h
src/app.h:
```
"""

from __future__ import annotations

import re
from pathlib import Path

from kiln.common import unique

#: Matches the colon that separates rule targets from prerequisites. A colon that is not followed by whitespace
#: belongs to a path, e.g. a Windows drive letter.
_RULE_SEPARATOR = re.compile(r":(?:\s|$)")


def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text) and text[i + 1] in " #\\":
            current.append(text[i + 1])
            i += 2
            continue
        if char == "$" and text[i : i + 2] == "$$":
            current.append("$")
            i += 2
            continue
        if char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)
        i += 1
    if current:
        tokens.append("".join(current))
    return tokens


def parse_dependency_file(text: str) -> list[Path]:
    """Return the prerequisites of all rules in *text*, in order of appearance and without duplicates."""

    text = re.sub(r"\\\r?\n", " ", text)
    prerequisites: list[Path] = []
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        match = _RULE_SEPARATOR.search(line)
        if match is None:
            continue
        prerequisites += map(Path, _tokenize(line[match.end() :]))
    return unique(prerequisites)


def read_dependency_file(path: Path) -> list[Path]:
    return parse_dependency_file(path.read_text(encoding="utf-8", errors="surrogateescape"))
