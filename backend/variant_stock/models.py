"""Data model shared by discovery, classification and the UI driver."""

import re
import time
from dataclasses import dataclass, field

_INDEX_RE = re.compile(r"\[(\d+)\]")

SINGLE_SELECT = "single-select"
MULTI_CHOICE = "multi-choice"


@dataclass(frozen=True)
class Option:
    value: str
    label: str
    disabled: bool = False

    @property
    def display(self) -> str:
        return self.label or self.value


@dataclass(frozen=True)
class Dimension:
    """One axis of variation, e.g. `variation[0]` with its enabled options."""
    name: str
    kind: str
    options: tuple = ()

    @property
    def index(self) -> int:
        return dimension_index(self.name)

    @property
    def size(self) -> int:
        return len(self.options)


def dimension_index(name: str) -> int:
    """Numeric position encoded in a control name (`variation[2]` -> 2). 0 if absent."""
    match = _INDEX_RE.search(name or "")
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class ComboResult:
    primary_label: str
    secondary_label: str
    available: bool

    def to_dict(self) -> dict:
        return {
            "talle": self.primary_label,
            "color": self.secondary_label,
            "available": self.available,
        }


@dataclass
class Job:
    url: str
    max_combos: int = 200
    max_ms: int = 20000
    created_at: float = field(default_factory=time.time)


@dataclass
class CheckResult:
    """Outcome of one successfully driven job."""
    product_url: str
    combos: list
    talles_count: int
    colores_count: int
    limited: bool
    max_combos: int
    max_ms: int
    elapsed_ms: int
    dimensions: list = field(default_factory=list)

    @property
    def combos_count(self) -> int:
        return len(self.combos)

    def to_dict(self) -> dict:
        return {
            "product_url": self.product_url,
            "combos": [c.to_dict() for c in self.combos],
            "combosCount": self.combos_count,
            "tallesCount": self.talles_count,
            "coloresCount": self.colores_count,
            "limited": self.limited,
            "max_combos": self.max_combos,
            "max_ms": self.max_ms,
            "elapsed_ms": self.elapsed_ms,
            "dimensions": [{"name": d.name, "size": d.size} for d in self.dimensions],
        }
