"""
Option discovery: turn the raw option controls read from the page into
ordered Dimensions.

The page script (see templates.py) reports one entry per control element:

    {
        "name": "variation[0]",      # indexed control name
        "tag": "select" | "input",
        "type": "radio" | "checkbox" | "hidden" | "",
        "candidate": 3,              # id of the control (select) or of the
                                     # form grouping the inputs; None for
                                     # inputs outside any form
        "in_purchase_form": True,    # inside the buy button's form or product wrapper
        "options": [{"value": "...", "label": "...", "disabled": False}],
    }

Everything past that point is plain Python so it can be exercised without a
browser.
"""

import logging
from collections import OrderedDict

from variant_stock.labels import normalize_text
from variant_stock.models import MULTI_CHOICE, SINGLE_SELECT, Dimension, Option

logger = logging.getLogger(__name__)

PURCHASE_FORM_BONUS = 1000
LOOSE_CANDIDATE = "loose"
CHOICE_INPUT_TYPES = ("radio", "checkbox")


def _control_kind(control: dict):
    tag = (control.get("tag") or "").lower()
    input_type = (control.get("type") or "").lower()
    if tag == "select":
        return SINGLE_SELECT
    if tag == "input" and input_type in CHOICE_INPUT_TYPES:
        return MULTI_CHOICE
    return None


def _read_options(raw_options) -> list:
    options = []
    for raw in raw_options or []:
        value = normalize_text(raw.get("value"))
        label = normalize_text(raw.get("label"))
        if not value or raw.get("disabled"):
            continue
        options.append(Option(value=value, label=label or value, disabled=False))
    return options


def _dedupe(options) -> list:
    seen = set()
    unique = []
    for option in options:
        key = (option.value, option.label)
        if key in seen:
            continue
        seen.add(key)
        unique.append(option)
    return unique


def build_dimensions(controls, scoped: bool = False) -> list:
    """
    Group raw controls by name and normalize them into Dimensions.

    `scoped` means the page has a purchase root (the buy button's form or
    product wrapper). Names whose best candidate lies outside it belong to
    other products on the page (recommendations, quick-buy widgets) and are
    dropped.

    When one name is rendered by several disjoint controls, each candidate is
    scored `1000 (inside the purchase form) + option count` and only the
    best one is kept (first wins on ties). Result is sorted by the numeric
    index in the name; dimensions without enabled options are dropped.
    """
    groups = OrderedDict()
    for control in controls or []:
        name = control.get("name") or ""
        if not name or (control.get("type") or "").lower() == "hidden":
            continue
        kind = _control_kind(control)
        if kind is None:
            continue

        candidates = groups.setdefault(name, OrderedDict())
        candidate_id = control.get("candidate")
        if candidate_id is None:
            # Loose inputs sharing a name are one control, however they are wrapped
            candidate_id = LOOSE_CANDIDATE if kind == MULTI_CHOICE else len(candidates)
        candidate = candidates.setdefault(candidate_id, {
            "kind": kind,
            "in_purchase_form": False,
            "options": [],
        })
        candidate["in_purchase_form"] = candidate["in_purchase_form"] or bool(control.get("in_purchase_form"))
        candidate["options"].extend(_read_options(control.get("options")))

    dimensions = []
    for name, candidates in groups.items():
        best = None
        best_score = -1
        for candidate in candidates.values():
            if candidate["kind"] == MULTI_CHOICE:
                candidate["options"] = _dedupe(candidate["options"])
            score = (PURCHASE_FORM_BONUS if candidate["in_purchase_form"] else 0) + len(candidate["options"])
            if score > best_score:
                best, best_score = candidate, score

        if len(candidates) > 1:
            logger.debug("[discovery] %s rendered %d times, kept score %d", name, len(candidates), best_score)

        if scoped and best and not best["in_purchase_form"]:
            logger.debug("[discovery] %s is outside the purchase root, skipped", name)
            continue

        if best and best["options"]:
            dimensions.append(Dimension(name=name, kind=best["kind"], options=tuple(best["options"])))

    dimensions.sort(key=lambda d: d.index)
    return dimensions
