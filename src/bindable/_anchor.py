"""Process-wide model counter.

Every model takes the next index at creation so its channel names are
unique for the life of the process. The counter starts at 0 on import and
is never reset or decremented.
"""

import itertools

# itertools.count is thread-safe (C-level GIL atomic)
_model_counter = itertools.count()


def next_model_index() -> int:
    return next(_model_counter)
