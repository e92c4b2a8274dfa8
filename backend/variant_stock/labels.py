"""
Label heuristics for storefront option text.

Two jobs live here:
1. Scoring how "size-like" an option label is, so the classifier can pick the
   primary dimension without trusting control order.
2. Deriving a fallback secondary label (usually the color) from the product
   URL slug or the product title when the page exposes no second dimension.

All patterns are grouped in a LabelPolicy. The default policy targets
Spanish-language storefronts (talle/talla, "único", "sin stock"); build a
different LabelPolicy to support another locale.
"""

import re
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse

_WS_RE = re.compile(r"[\s_\-]+")


def normalize_label(text) -> str:
    """Collapse whitespace, underscores and hyphens into single spaces."""
    return _WS_RE.sub(" ", str(text or "")).strip()


def normalize_text(text) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()


@dataclass
class LabelPolicy:
    # Size-label heuristic
    size_prefix: re.Pattern = re.compile(r"^(talle|talla|size|t\.)\s*", re.I)
    size_letters: re.Pattern = re.compile(r"^(xxs|xs|s|m|l|xl|xxl|xxxl|[2-5]xl)$", re.I)
    size_t_number: re.Pattern = re.compile(r"^t\s?\d{1,2}$", re.I)
    one_size: re.Pattern = re.compile(
        r"^(u|tu|único|unico|talle único|talle unico|talla única|talla unica|one size|os)$", re.I
    )
    size_number: re.Pattern = re.compile(r"^(\d{1,2})([.,]5)?$")
    size_number_range: tuple = (0, 60)
    size_threshold: float = 0.34

    # Fallback label derivation
    listing_prefix: str = "/productos/"
    item_code_markers: tuple = ("art",)
    vowels: str = "aeiouáéíóú"
    opaque_code: re.Pattern = re.compile(r"^[a-z0-9]{4,6}$", re.I)
    title_delimiter: re.Pattern = re.compile(r"\s+[-|–—]\s+|\s*:\s+")
    title_item_code: re.Pattern = re.compile(r"^(art\.?\s*)?[a-z]{0,3}[\s.\-]?\d[\w./\-]*$", re.I)
    title_leading_code: re.Pattern = re.compile(r"^\s*(art\.?[\s\-]*\d+[\w./]*|\d{3,}[\w./]*)[\s.\-]*", re.I)

    # Availability text/class signals
    no_stock_classes: tuple = ("nostock",)
    no_stock_phrases: tuple = ("sin stock", "agotado")

    # Placeholder labels
    no_primary_label: str = "(sin talle)"
    no_secondary_label: str = "(sin color)"

    extra_size_labels: set = field(default_factory=set)

    def is_size_label(self, label: str) -> bool:
        text = normalize_text(label).lower()
        if not text:
            return False
        if text in self.extra_size_labels:
            return True
        if self.one_size.match(text):
            return True
        text = self.size_prefix.sub("", text).strip()
        if self.size_letters.match(text) or self.size_t_number.match(text):
            return True
        match = self.size_number.match(text)
        if match:
            low, high = self.size_number_range
            return low <= int(match.group(1)) <= high
        return False

    def is_opaque_code(self, token: str) -> bool:
        """Short alphanumeric token with fewer than two vowels, e.g. `bpofg`."""
        if not self.opaque_code.match(token):
            return False
        vowel_count = sum(1 for ch in token.lower() if ch in self.vowels)
        return vowel_count < 2


DEFAULT_POLICY = LabelPolicy()


def size_score(labels, policy: LabelPolicy = DEFAULT_POLICY) -> float:
    """Fraction of labels that look like sizes."""
    labels = list(labels)
    if not labels:
        return 0.0
    hits = sum(1 for label in labels if policy.is_size_label(label))
    return hits / len(labels)


def label_from_url(product_url: str, policy: LabelPolicy = DEFAULT_POLICY) -> str:
    """
    Derive a label from the product slug.

    `.../productos/art-4315-lila-rosa-bpofg/` -> "lila rosa"
    """
    path = unquote(urlparse(product_url or "").path or "")
    if policy.listing_prefix not in path:
        return ""
    slug = path.split(policy.listing_prefix, 1)[1].split("/")[0]
    tokens = [t for t in slug.split("-") if t]

    if tokens and tokens[0].lower() in policy.item_code_markers:
        tokens.pop(0)
        if tokens and tokens[0].isdigit():
            tokens.pop(0)

    # Never strip the last remaining word
    if len(tokens) > 1 and policy.is_opaque_code(tokens[-1]):
        tokens.pop()

    return normalize_label(" ".join(tokens))


def label_from_title(title: str, policy: LabelPolicy = DEFAULT_POLICY) -> str:
    """
    Derive a label from the product title.

    "ART 4315 - Lila Rosa" -> "Lila Rosa"; "ART4315 Lila Rosa" -> "Lila Rosa"
    """
    title = normalize_text(title)
    if not title:
        return ""

    parts = policy.title_delimiter.split(title, maxsplit=1)
    if len(parts) == 2 and policy.title_item_code.match(parts[0].strip()):
        return normalize_label(parts[1])

    return normalize_label(policy.title_leading_code.sub("", title, count=1))


def fallback_label(product_url: str, title: str = "", policy: LabelPolicy = DEFAULT_POLICY) -> str:
    """Secondary label used when the page has no secondary dimension."""
    return label_from_title(title, policy) or label_from_url(product_url, policy)
