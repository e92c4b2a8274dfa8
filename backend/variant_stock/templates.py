"""
Storefront template capabilities.

A template knows how one storefront family renders its product page: where
the option controls live, how to change them the way a shopper would, and
how the buy button tells us whether the current selection is in stock.
The explorer only talks to this interface, so adding a storefront family
means adding a StorefrontTemplate subclass and registering it in TEMPLATES.
"""

import logging

from variant_stock.discovery import build_dimensions
from variant_stock.labels import DEFAULT_POLICY, LabelPolicy, normalize_text

logger = logging.getLogger(__name__)


class StorefrontTemplate:
    name = "base"
    # Selector awaited after navigation before the page counts as loaded
    ready_selector = "body"

    def __init__(self, policy: LabelPolicy = DEFAULT_POLICY):
        self.policy = policy

    async def discover_dimensions(self, page) -> list:
        raise NotImplementedError

    async def apply_option(self, page, name: str, value: str) -> bool:
        """Select `value` on the control for dimension `name`. False if no control matched."""
        raise NotImplementedError

    async def read_availability(self, page) -> bool:
        raise NotImplementedError

    async def read_title(self, page) -> str:
        return normalize_text(await page.title())


def availability_from_snapshot(snapshot, policy: LabelPolicy = DEFAULT_POLICY) -> bool:
    """
    Decide purchasability from the buy-button state read off the page.

    A missing button counts as unavailable, never as unknown.
    """
    if not snapshot or not snapshot.get("found"):
        return False
    if snapshot.get("disabled"):
        return False
    class_name = (snapshot.get("className") or "").lower()
    if any(cls in class_name for cls in policy.no_stock_classes):
        return False
    text = normalize_text(snapshot.get("text")).lower()
    if any(phrase in text for phrase in policy.no_stock_phrases):
        return False
    return True


# ── Tiendanube family ────────────────────────────────────────────────────

BUY_BUTTON_SELECTOR = (
    '[data-component="product.add-to-cart"], input.product-buy-btn, button.product-buy-btn'
)

PRODUCT_WRAPPER_SELECTOR = ".product-form, .js-product-form, .product-detail, .product-container"

# Resolves the purchase root: the buy button's form, else its product wrapper
_ROOT_JS = '''
    const findRoot = (buySelector, wrapperSelector) => {
        const btn = document.querySelector(buySelector);
        if (!btn) return null;
        return btn.closest('form') || btn.closest(wrapperSelector) || null;
    };
'''

_DISCOVER_JS = '''({buySelector, wrapperSelector}) => {''' + _ROOT_JS + '''
    const norm = (s) => String(s ?? '').replace(/\\s+/g, ' ').trim();
    const root = findRoot(buySelector, wrapperSelector);
    const containers = [];
    const idOf = (el) => {
        let i = containers.indexOf(el);
        if (i === -1) {
            containers.push(el);
            i = containers.length - 1;
        }
        return i;
    };
    const inRoot = (el) => !!(root && root.contains(el));

    const controls = [];
    for (const el of document.querySelectorAll('[name^="variation["]')) {
        const tag = el.tagName.toLowerCase();
        const type = (el.getAttribute('type') || '').toLowerCase();
        const name = el.getAttribute('name') || '';

        if (tag === 'select') {
            controls.push({
                name, tag, type,
                candidate: idOf(el),
                in_purchase_form: inRoot(el),
                options: Array.from(el.querySelectorAll('option')).map(o => ({
                    value: norm(o.getAttribute('value') ?? o.textContent),
                    label: norm(o.textContent),
                    disabled: o.disabled,
                })),
            });
        } else if (tag === 'input') {
            // Inputs outside the root and any form report no candidate (grouped by name)
            const group = inRoot(el) ? root : el.closest('form');
            controls.push({
                name, tag, type,
                candidate: group ? idOf(group) : null,
                in_purchase_form: inRoot(el),
                options: [{
                    value: norm(el.getAttribute('value')),
                    label: norm(el.getAttribute('aria-label')) || norm(el.getAttribute('title')) || norm(el.value),
                    disabled: el.disabled,
                }],
            });
        }
    }
    return { scoped: !!root, controls };
}'''

_APPLY_JS = '''({name, value, buySelector, wrapperSelector}) => {''' + _ROOT_JS + '''
    const root = findRoot(buySelector, wrapperSelector) || document;
    const esc = (s) => CSS.escape(s);

    const select = root.querySelector(`select[name="${esc(name)}"]`);
    if (select) {
        select.value = value;
        select.dispatchEvent(new Event('change', { bubbles: true }));
        return true;
    }
    const input = root.querySelector(`input[name="${esc(name)}"][value="${esc(value)}"]`);
    if (input) {
        input.click();
        input.dispatchEvent(new Event('change', { bubbles: true }));
        return true;
    }
    return false;
}'''

_AVAILABILITY_JS = '''(buySelector) => {
    const btn = document.querySelector(buySelector);
    if (!btn) return { found: false };
    const isControl = btn instanceof HTMLInputElement || btn instanceof HTMLButtonElement;
    return {
        found: true,
        disabled: isControl && btn.disabled === true,
        className: btn.getAttribute('class') || '',
        text: btn instanceof HTMLInputElement ? (btn.value || '') : (btn.textContent || ''),
    };
}'''

_TITLE_JS = '''() => {
    const el = document.querySelector('[data-store="product-name"], h1');
    return (el && el.textContent) || document.title || '';
}'''


class TiendanubeTemplate(StorefrontTemplate):
    """Product pages rendering `variation[N]` selects/radios and a `product-buy-btn`."""

    name = "tiendanube"
    ready_selector = 'h1, [data-store="product-name"], [data-component="product.add-to-cart"]'

    def _selectors(self) -> dict:
        return {"buySelector": BUY_BUTTON_SELECTOR, "wrapperSelector": PRODUCT_WRAPPER_SELECTOR}

    async def discover_dimensions(self, page) -> list:
        found = await page.evaluate(_DISCOVER_JS, self._selectors())
        return build_dimensions(found.get("controls"), scoped=bool(found.get("scoped")))

    async def apply_option(self, page, name: str, value: str) -> bool:
        applied = await page.evaluate(
            _APPLY_JS,
            {"name": name, "value": value, **self._selectors()},
        )
        if not applied:
            logger.debug("[template] no control for %s=%s", name, value)
        return bool(applied)

    async def read_availability(self, page) -> bool:
        snapshot = await page.evaluate(_AVAILABILITY_JS, BUY_BUTTON_SELECTOR)
        return availability_from_snapshot(snapshot, self.policy)

    async def read_title(self, page) -> str:
        return normalize_text(await page.evaluate(_TITLE_JS))


TEMPLATES = {
    TiendanubeTemplate.name: TiendanubeTemplate,
}


def get_template(name: str, policy: LabelPolicy = DEFAULT_POLICY) -> StorefrontTemplate:
    try:
        return TEMPLATES[name](policy)
    except KeyError:
        raise ValueError(f"Unknown storefront template '{name}'. Known: {sorted(TEMPLATES)}")
