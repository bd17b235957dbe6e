from __future__ import annotations

import re

DEFAULT_MODULE_NAME = "custom_module"
MAX_MODULE_NAME = 50

_STOP_WORDS = frozenset(
    """
    create make build generate write new project app application module odoo addon
    a an the this that please for to of and with in on from when i me we need want
    it is be should then my our some
    """.split()
)


def sanitize_module_name(text: str, *, max_words: int = 3) -> str:
    """Derive a snake_case module identifier from free text.

    >>> sanitize_module_name("Create a real estate module")
    'real_estate'
    """
    tokens = re.sub(r"[^a-z0-9]+", " ", str(text or "").lower()).split()
    kept = [t for t in tokens if t not in _STOP_WORDS]
    core = (kept or tokens)[:max_words]
    slug = "_".join(core)[:MAX_MODULE_NAME].strip("_")
    if not slug or not slug[0].isalpha():
        letters = [t for t in (kept or tokens) if t[0].isalpha()]
        slug = "_".join(letters[:max_words])[:MAX_MODULE_NAME].strip("_")
    return slug or DEFAULT_MODULE_NAME


def is_valid_module_name(name: str) -> bool:
    return bool(re.fullmatch(r"[a-z][a-z0-9_]{0,%d}" % (MAX_MODULE_NAME - 1), name or ""))


__all__ = ["sanitize_module_name", "is_valid_module_name", "DEFAULT_MODULE_NAME"]
