from __future__ import annotations


def normalize_learn_key(text: str) -> str:
    """Bucket key for duration history: lowercase, alphanumerics and single spaces.

    "Deep Work!" and "  deep   work" both map to "deep work".
    """
    kept = []
    for ch in text.lower():
        if ch.isalnum():
            kept.append(ch)
        elif ch.isspace():
            kept.append(" ")
    return " ".join("".join(kept).split())
