from __future__ import annotations

import re

# "CS101 - Data Structures", "CS101: Data Structures", "ICS221  Networks", "CS101 Data Structures"
COURSE_CODE_PREFIXES = (
    re.compile(r"^[\w\d]+\s*[-:]\s*"),
    re.compile(r"^[\w\d]+\s{2,}"),
    re.compile(r"^[\w\d]+\s+"),
)


def extract_course_name(course_name: str) -> str:
    trimmed = (course_name or "").strip()
    for pattern in COURSE_CODE_PREFIXES:
        if pattern.match(trimmed):
            return pattern.sub("", trimmed, count=1).strip()
    return trimmed

