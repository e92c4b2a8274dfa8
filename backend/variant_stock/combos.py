"""Bounded Cartesian product over the secondary dimensions."""


def build_assignments(secondaries, max_combos: int) -> list:
    """
    Every combination of one option per secondary dimension, capped at `max_combos`.

    Built dimension by dimension: each partial assignment is extended with each
    option of the next dimension, and extension stops as soon as the running
    total reaches the cap. When the cap binds early, later dimensions are
    under-represented (the first options of earlier dimensions win). With no
    secondaries the result is a single empty assignment.
    """
    assignments = [{}]
    if max_combos < 1:
        return []

    for dimension in secondaries:
        if not dimension.options:
            continue
        extended = []
        for partial in assignments:
            for option in dimension.options:
                extended.append({**partial, dimension.name: option})
                if len(extended) >= max_combos:
                    break
            if len(extended) >= max_combos:
                break
        assignments = extended

    return assignments
