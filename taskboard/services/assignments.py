# assignments.py


def _unique(ids):
    seen = set()
    out = []
    for uid in ids:
        if uid not in seen:
            seen.add(uid)
            out.append(uid)
    return out


def diff_assignees(old, new):
    """
    Return ``(added, removed)`` between two assignee lists, in list order.

    Submitting the same list again gives two empty lists.
    """
    old = _unique(old or [])
    new = _unique(new or [])
    old_set = set(old)
    new_set = set(new)
    added = [uid for uid in new if uid not in old_set]
    removed = [uid for uid in old if uid not in new_set]
    return added, removed
