"""
Turns a review backend's free-form answer into review comments.

Stages, first match wins:

1. Structured JSON (bare, or inside a ```json fence): a list of comment
   objects, ``{"comments": [...]}``, or a single comment object. An answer that
   looks like JSON but does not parse yields no comments.
2. A "no issues" phrase yields no comments.
3. Bullet or numbered lines, one comment each, with ``line <n>`` picked out of
   the text and the severity guessed from keywords.

Anything else yields no comments. The parser never raises.
"""

import json
import re
from typing import Any, Dict, List, Optional

from hookreview.models.code_review import ReviewComment, Severity

FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
LINE_REFERENCE = re.compile(r"[Ll]ine\s*(\d+)")

NO_ISSUE_PHRASES = (
    "no issues",
    "looks good",
    "no problems",
    "lgtm",
    "沒有問題",
    "沒有發現問題",
)

ERROR_WORDS = ("error", "critical", "security", "嚴重")
WARNING_WORDS = ("warning", "警告", "should", "建議")


def parse_review_answer(answer: Optional[str]) -> List[ReviewComment]:
    if not answer or not answer.strip():
        return []

    text = answer.strip()
    fenced = FENCED_BLOCK.search(text)
    candidate = fenced.group(1).strip() if fenced else text
    if candidate.startswith("[") or candidate.startswith("{"):
        return _parse_json(candidate)

    lowered = text.lower()
    if any(phrase in lowered for phrase in NO_ISSUE_PHRASES):
        return []

    return _parse_bullets(text)


def guess_severity(text: str) -> Severity:
    lowered = text.lower()
    if any(word in lowered for word in ERROR_WORDS):
        return Severity.ERROR
    if any(word in lowered for word in WARNING_WORDS):
        return Severity.WARNING
    return Severity.INFO


def _parse_json(candidate: str) -> List[ReviewComment]:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return []

    if isinstance(data, dict):
        items = data.get("comments") if "comments" in data else [data]
    else:
        items = data
    if not isinstance(items, list):
        return []

    comments = []
    for item in items:
        if isinstance(item, dict):
            comment = _comment_from_json(item)
            if comment is not None:
                comments.append(comment)
    return comments


def _comment_from_json(item: Dict[str, Any]) -> Optional[ReviewComment]:
    text = item.get("comment") or item.get("message") or item.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    line = item.get("line", item.get("line_number"))
    try:
        line_number = int(line) if line is not None else None
    except (TypeError, ValueError):
        line_number = None
    if line_number is not None and line_number < 1:
        line_number = None

    return ReviewComment(
        line_number=line_number,
        text=text.strip(),
        severity=Severity.coerce(item.get("severity")),
        category=item.get("category") or None,
        suggestion=item.get("suggestion") or None,
    )


def _is_bullet(line: str) -> bool:
    return line[0] in "-*" or line[0].isdigit()


def _parse_bullets(text: str) -> List[ReviewComment]:
    comments: List[ReviewComment] = []
    current: Optional[Dict[str, Any]] = None

    def flush():
        if current and current["text"].strip():
            comments.append(
                ReviewComment(
                    line_number=current["line"],
                    text=current["text"].strip(),
                    severity=current["severity"],
                )
            )

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith("---"):
            continue
        if _is_bullet(line):
            flush()
            match = LINE_REFERENCE.search(line)
            current = {
                "text": line.lstrip("-* 0123456789."),
                "severity": guess_severity(line),
                "line": int(match.group(1)) if match else None,
            }
        elif current is not None:
            current["text"] += " " + line
    flush()
    return comments
