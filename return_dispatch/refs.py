"""Helpers for git references."""

import logging
import re

log = logging.getLogger(__name__)

HEAD_REF_PATTERN = re.compile(r"/?refs/heads/")
TAG_REF_PATTERN = re.compile(r"/?refs/tags/")


def is_tag_ref(ref: str) -> bool:
    """Return whether the ref points at a tag."""
    return TAG_REF_PATTERN.search(ref) is not None


def branch_name_from_ref(ref: str | None) -> str | None:
    """Derive the branch name used to filter workflow runs.

    Tag refs cannot be used as a branch filter and yield None. Refs that do
    not look like "refs/heads/<name>" are returned unchanged, so plain branch
    names such as "main" work, and so does a malformed "refs/heads/".
    """
    if not ref:
        return None

    if is_tag_ref(ref):
        log.debug("Unable to filter branch, unsupported ref: %s", ref)
        return None

    parts = HEAD_REF_PATTERN.split(ref)
    if len(parts) > 1 and parts[1]:
        return parts[1]
    return ref
