"""
Name cleanup for task names coming back from the model.

The model sometimes echoes the classification label inside the name itself
("SIGNAL: Review budget") or wraps it in markdown bold. clean_name() produces
the display name; normalize() produces the key used only for comparison.
"""
import re

LABEL_PREFIX = re.compile(r"^(?:signal|necessary|noise)(?:\s*:\s*|\s+[-–—]\s+|\s+|$)", re.IGNORECASE)
EDGE_ASTERISKS = re.compile(r"^\*+|\*+$")
WHITESPACE = re.compile(r"\s+")
NON_ALNUM = re.compile(r"[^\w\s]|_")


def clean_name(raw: str) -> str:
    if not raw:
        return ""

    name = EDGE_ASTERISKS.sub("", raw.strip())
    name = name.replace("**", "")
    name = LABEL_PREFIX.sub("", name.strip())
    return WHITESPACE.sub(" ", name).strip()


def normalize(text: str) -> str:
    """Lower-cased, label-free, punctuation-free comparison key."""
    key = clean_name(text).lower()
    key = NON_ALNUM.sub("", key)
    return WHITESPACE.sub(" ", key).strip()
