import re

ALLOWED_LABELS = ("new", "upgrade", "refactor", "remove", "fix")

# "### Fixes", "## **New**", "#### upgrades:" ... headings the model was told not to write.
_LABEL_HEADING_RE = re.compile(
    r"^#{2,6}\s*\**\s*(new|upgrade|refactor|remove|fix)(?:e?s)?\s*\**\s*:?\s*\**\s*$",
    re.IGNORECASE,
)
_HEADING_RE = re.compile(r"^#{1,6}\s")
_LABELED_BULLET_RE = re.compile(r"^\s*-\s+\*\*(new|upgrade|refactor|remove|fix):\*\*", re.IGNORECASE)
_BULLET_RE = re.compile(r"^(\s*)-\s+")


def md_escape_inline(text) -> str:
    return str(text or "").replace("\r", "").strip()


def normalize_release_notes(text: str) -> str:
    """Turn label sub-headings into labelled bullets.

    The prompt asks for ``- **fix:** ...`` bullets, but models still emit
    ``### Fixes`` followed by plain bullets. Those headings are dropped and
    the bullets underneath get the matching label prefix.
    """
    current_label: str | None = None
    out: list[str] = []

    for line in str(text or "").replace("\r", "").split("\n"):
        m = _LABEL_HEADING_RE.match(line.strip())
        if m:
            current_label = m.group(1).lower()
            continue

        if _HEADING_RE.match(line.strip()):
            current_label = None
            out.append(line)
            continue

        if _LABELED_BULLET_RE.match(line):
            current_label = None
            out.append(line)
            continue

        if current_label and _BULLET_RE.match(line):
            out.append(_BULLET_RE.sub(lambda b: f"{b.group(1)}- **{current_label}:** ", line, count=1))
            continue

        out.append(line)

    return "\n".join(out).strip()
