"""Daemon messages that mark a condition as transient.

The daemon signals these only through free-form text, so they are matched as
substrings and must stay byte-for-byte what it sends. The network pattern is
matched case-sensitively; volume and container patterns ignore case.
"""

NETWORK_HAS_ACTIVE_ENDPOINTS = "has active endpoints"
VOLUME_IS_IN_USE = "volume is in use"
NO_SUCH_CONTAINER = "No such container"
REMOVAL_ALREADY_IN_PROGRESS = "is already in progress"

IGNORABLE_CONTAINER_REMOVAL_ERRORS = (NO_SUCH_CONTAINER, REMOVAL_ALREADY_IN_PROGRESS)


def contains_message(error: BaseException | str, *patterns: str, ignore_case: bool = True) -> bool:
    text = str(error)
    if not ignore_case:
        return any(pattern in text for pattern in patterns)
    text = text.lower()
    return any(pattern.lower() in text for pattern in patterns)


def contains_ignorable_error_message(error: BaseException | str) -> bool:
    """Whether a container removal failure can be ignored during teardown."""
    return contains_message(error, *IGNORABLE_CONTAINER_REMOVAL_ERRORS)
