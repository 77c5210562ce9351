# tests/conftest.py — v1
"""Shared test fixtures for all unit tests.

Provides settings bound to a temp cache dir, a controllable clock, canned
upstream payloads, an httpx.MockTransport-backed fetcher factory and small
on-disk Rust/Python/Node packages for the import resolver.
No network access: every HTTP call goes through MockTransport.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from dociium.config.settings import Settings
from dociium.core.models import ImplEdge, NormalizedDocument, SymbolKind, SymbolRecord
from dociium.extraction.fetcher import HttpFetcher


# === FIXTURES: Settings and time ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with the disk cache under tmp_path and no retry delays."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        cache_dir=tmp_path / "cache",
        http_max_retries=1,
        http_backoff_base_s=0.01,
    )


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


async def _no_sleep(_: float) -> None:
    return None


# === FIXTURES: Upstream payloads ===


SEARCH_INDEX_JS = """\
var searchIndex = {"demo":{"doc":"Demo crate","t":[0,3,8,5,3],\
"n":["demo","Bar","Render","bar_helper","Baz"],\
"q":[[0,"demo"],[1,"demo::shapes"]],\
"d":["Demo crate","A bar.","Renders things.","",""],\
"i":[0,0,0,0,0],"p":[]}};
if (typeof exports !== 'undefined') {exports.searchIndex = searchIndex};
"""

IMPLEMENTORS_JS = """\
(function() {var implementors = {"demo":[["impl <a class=\\"trait\\">Render</a> for <a class=\\"struct\\">Bar</a>",false,["demo::shapes::Bar"]],\
["impl&lt;T: Clone&gt; Render for Vec&lt;T&gt;",false,[]]]};\
if (window.register_implementors) {window.register_implementors(implementors);}})()
"""

ITEM_HTML = """\
<html><body><main>
<h1 class="main-heading">Struct <span>demo::shapes::Bar</span></h1>
<a class="src" href="../../src/demo/shapes.rs.html#10-24">Source</a>
<pre class="rust item-decl"><code>pub struct Bar { /* private fields */ }</code></pre>
<details class="toggle top-doc" open><div class="docblock">
<p>A bar with a long description.</p>
<pre class="rust rust-example-rendered"><code>let b = demo::shapes::Bar::new();</code></pre>
</div></details>
</main></body></html>
"""


SOURCE_LINES = [f"// shapes.rs line {n}" for n in range(1, 31)]
SOURCE_LINES[9] = "pub struct Bar {"
SOURCE_LINES[23] = "}"

SOURCE_HTML = (
    '<html><body><main><div class="example-wrap">'
    '<div data-nosnippet><pre class="src-line-numbers">'
    + "\n".join(f'<a href="#{n}" id="{n}">{n}</a>' for n in range(1, 31))
    + '</pre></div><pre class="rust"><code>'
    + "\n".join(SOURCE_LINES).replace("<", "&lt;")
    + "</code></pre></div></main></body></html>"
)


@pytest.fixture
def search_index_js() -> str:
    return SEARCH_INDEX_JS


@pytest.fixture
def implementors_js() -> str:
    return IMPLEMENTORS_JS


@pytest.fixture
def item_html() -> str:
    return ITEM_HTML


@pytest.fixture
def docs_routes() -> dict[str, object]:
    """URL -> body (str/dict) or status code for a complete demo@1.0.0."""
    base = "https://docs.rs/demo/1.0.0"
    return {
        f"{base}/search-index.js": SEARCH_INDEX_JS,
        f"{base}/trait.impl/demo/shapes/trait.Render.js": IMPLEMENTORS_JS,
        f"{base}/demo/shapes/struct.Bar.html": ITEM_HTML,
        f"{base}/src/demo/shapes.rs.html": SOURCE_HTML,
        "https://crates.io/api/v1/crates/demo": {
            "crate": {
                "name": "demo", "max_stable_version": "1.0.0", "newest_version": "1.1.0-rc.1",
                "description": "Demo crate ", "downloads": 42, "keywords": ["shapes"],
                "categories": ["graphics"],
            },
            "versions": [
                {"num": "0.9.0", "downloads": 2, "yanked": True, "license": "MIT"},
                {"num": "1.1.0-rc.1", "downloads": 1, "license": "MIT OR Apache-2.0"},
                {"num": "1.0.0", "downloads": 39, "license": "MIT"},
            ],
        },
    }


# === FIXTURES: HTTP ===


class RecordingTransport:
    """Route table for httpx.MockTransport that records requested URLs."""

    def __init__(self, routes: dict[str, object]) -> None:
        self.routes = routes
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url.copy_with(query=None))
        self.calls.append(str(request.url))
        body = self.routes.get(url, 404)
        if isinstance(body, int):
            return httpx.Response(body, text=f"status {body}")
        if isinstance(body, (dict, list)):
            return httpx.Response(200, json=body)
        return httpx.Response(200, text=str(body))


@pytest.fixture
def make_fetcher(settings: Settings) -> Callable[..., tuple[HttpFetcher, RecordingTransport]]:
    """Build an HttpFetcher whose client is served from a route table."""

    def _make(routes: dict[str, object], fetcher_settings: Settings | None = None):
        transport = RecordingTransport(routes)
        client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        fetcher = HttpFetcher(fetcher_settings or settings, client=client, sleep=_no_sleep)
        return fetcher, transport

    return _make


# === FIXTURES: Domain objects ===


@pytest.fixture
def sample_symbols() -> list[SymbolRecord]:
    return [
        SymbolRecord(path="demo", name="demo", kind=SymbolKind.MODULE, doc="Demo crate"),
        SymbolRecord(path="demo::shapes::Bar", name="Bar", kind=SymbolKind.STRUCT, doc="A bar."),
        SymbolRecord(path="demo::shapes::Render", name="Render", kind=SymbolKind.TRAIT),
        SymbolRecord(path="demo::shapes::bar_helper", name="bar_helper", kind=SymbolKind.FUNCTION),
        SymbolRecord(path="demo::shapes::Baz", name="Baz", kind=SymbolKind.STRUCT),
    ]


@pytest.fixture
def sample_edges() -> list[ImplEdge]:
    return [
        ImplEdge(trait_path="demo::shapes::Render", type_path="demo::shapes::Bar"),
        ImplEdge(trait_path="demo::shapes::Render", type_path="Vec<T>", generics=("T",), is_blanket=False),
        ImplEdge(trait_path="demo::Clone", type_path="demo::shapes::Bar"),
    ]


@pytest.fixture
def sample_document(sample_symbols: list[SymbolRecord], sample_edges: list[ImplEdge]) -> NormalizedDocument:
    return NormalizedDocument(
        package="demo",
        version="1.0.0",
        symbols=tuple(sample_symbols),
        impls=frozenset(sample_edges),
        strategy="columnar",
        completeness=0.8,
    )


# === FIXTURES: Local packages for import resolution ===


def _write(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def rust_crate(tmp_path: Path) -> Path:
    """Crate ``mycrate`` with a file module, a mod.rs module and an inline re-export."""
    return _write(tmp_path / "registry" / "mycrate-0.3.1", {
        "Cargo.toml": '[package]\nname = "mycrate"\nversion = "0.3.1"\n',
        "src/lib.rs": (
            "pub mod util;\n"
            "pub mod net;\n"
            "pub use inner::Thing;\n"
            "pub mod inner { pub struct Thing; }\n"
            "\n"
            "pub fn top_level() {}\n"
            "macro_rules! shout { () => {} }\n"
        ),
        "src/util.rs": "use std::fmt;\n\npub struct Helper;\n\npub(crate) async fn run() {}\n",
        "src/net/mod.rs": "pub mod tcp;\n\npub trait Transport {}\n",
    })


@pytest.fixture
def python_pkg(tmp_path: Path) -> Path:
    """site-packages/pkg with a re-exported class and a submodule."""
    site = tmp_path / "site-packages"
    _write(site, {
        "pkg/__init__.py": "from .sub import Greeter\nfrom .helpers import (\n    shout as yell,\n)\n\nVERSION = '1.0'\n",
        "pkg/sub/__init__.py": "class Greeter:\n    pass\n",
        "pkg/helpers.py": "import os\n\n\ndef shout(text):\n    return text.upper()\n\n\nasync def whisper(text):\n    return text\n",
    })
    return site / "pkg"


@pytest.fixture
def node_pkg(tmp_path: Path) -> Path:
    """node_modules/mylib with an index re-export and a package.json entry."""
    modules = tmp_path / "node_modules"
    _write(modules, {
        "mylib/package.json": '{"name": "mylib", "main": "index.js"}',
        "mylib/index.js": "export { foo } from './foo.js';\nexport function direct() {}\nexport default direct;\n",
        "mylib/foo.js": "\nexport function foo() { return 1; }\n",
        "mylib/utils/index.ts": "export const helper = () => 2;\n",
    })
    return modules / "mylib"
