import pytest

from variant_stock.config import Settings
from variant_stock.models import MULTI_CHOICE, SINGLE_SELECT, Dimension, Option
from variant_stock.templates import StorefrontTemplate


class FakeClock:
    def __init__(self, start=1_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class FakePage:
    def __init__(self, clock=None, fail_goto=None, settle_cost_ms=0):
        self.clock = clock
        self.fail_goto = fail_goto
        self.settle_cost_ms = settle_cost_ms
        self.selections = {}
        self.applied = []
        self.visited = []
        self.default_timeout = None
        self.closed = False

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    async def goto(self, url, wait_until=None):
        if self.fail_goto:
            raise self.fail_goto
        self.visited.append((url, wait_until))

    async def wait_for_selector(self, selector, timeout=None):
        return True

    async def wait_for_timeout(self, ms):
        if self.clock is not None:
            self.clock.advance(self.settle_cost_ms or ms)

    async def title(self):
        return ""

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Stands in for a live Session: new_context / is_connected / close."""

    def __init__(self, page_factory=None):
        self.page_factory = page_factory or FakePage
        self.contexts = []
        self.context_kwargs = []
        self.connected = True
        self.close_calls = 0
        self.fail_close = False

    async def new_context(self, **kwargs):
        self.context_kwargs.append(kwargs)
        context = FakeContext(self.page_factory())
        self.contexts.append(context)
        return context

    def is_connected(self):
        return self.connected

    async def close(self):
        self.close_calls += 1
        self.connected = False
        if self.fail_close:
            raise RuntimeError("close exploded")


class FakeLauncher:
    def __init__(self, page_factory=None, fail_with=None):
        self.page_factory = page_factory
        self.fail_with = fail_with
        self.launches = 0
        self.browsers = []

    async def __call__(self):
        self.launches += 1
        if self.fail_with:
            raise self.fail_with
        browser = FakeBrowser(self.page_factory)
        self.browsers.append(browser)
        return browser


class FakeTemplate(StorefrontTemplate):
    """
    Page model for a storefront: fixed dimensions and a stock rule evaluated
    against the options currently selected on the page.
    """

    name = "fake"

    def __init__(self, dimensions=(), in_stock=None, title="", has_buy_button=True):
        super().__init__()
        self.dimensions = list(dimensions)
        self.in_stock = in_stock or (lambda selections: True)
        self.title = title
        self.has_buy_button = has_buy_button
        self.reads = 0

    async def discover_dimensions(self, page):
        return list(self.dimensions)

    async def apply_option(self, page, name, value):
        page.selections[name] = value
        page.applied.append((name, value))
        return True

    async def read_availability(self, page):
        self.reads += 1
        if not self.has_buy_button:
            return False
        return bool(self.in_stock(dict(page.selections)))

    async def read_title(self, page):
        return self.title


def dim(name, labels, kind=SINGLE_SELECT, disabled=()):
    return Dimension(
        name=name,
        kind=kind,
        options=tuple(Option(value=l.lower(), label=l, disabled=l in disabled) for l in labels),
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        settle_ms=40,
        restart_backoff_ms=0,
        restart_every_jobs=3,
        queue_capacity=5,
        exit_on_launch_failure=False,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def size_and_color():
    return [
        dim("variation[0]", ["S", "M", "L", "XL"]),
        dim("variation[1]", ["Rojo", "Azul"], kind=MULTI_CHOICE),
    ]
