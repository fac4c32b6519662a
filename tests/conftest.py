"""Shared fixtures: page markup and a scripted fetcher."""

from typing import Dict, List

import httpx
import pytest

from creaturerealm.layers.cache import ResourceCache
from creaturerealm.layers.catalog import CatalogScraper


INDEX_HTML = """
<html><body>
<div class="row">
  <div class="col">
    <div class="card itemPopup">
      <div class="d-flex">
        <a href="/en/Pal_Metal_Ingot"><img class="size128" src="https://cdn.paldb.cc/image/Pal/Texture/UI/InventoryItemIcon/T_itemicon_Material_PalMetalIngot.webp"></a>
        <div>
          <a class="itemname" href="https://paldb.cc/en/Pal_Metal_Ingot?ref=index">Pal Metal Ingot</a>
          <span class="hover_text_rarity1">Uncommon</span>
          <span><span>Technology</span></span> <span class="border">33</span>
        </div>
      </div>
      <div class="card-body">
        <div>Ingot forged from ore.</div>
      </div>
      <div class="recipes">
        <div class="d-flex justify-content-between p-2 align-items-center border-top">
          <div><a class="itemname" href="/en/Ore"><img src="/image/T_itemicon_Ore.webp">Ore</a></div>
          <div>2</div>
        </div>
        <div class="d-flex justify-content-between p-2 align-items-center border-top">
          <div><a class="itemname" href="/en/Paldium_Fragment"><img src="/image/T_itemicon_Paldium.webp">Paldium Fragment</a></div>
          <div>1</div>
        </div>
      </div>
    </div>
  </div>
  <div class="col">
    <div class="card itemPopup">
      <div class="d-flex">
        <a href="/en/Ancient_Part"><img class="size128" src="/image/Pal/Texture/UI/InventoryItemIcon/T_itemicon_Material_AncientPart.webp"></a>
        <div>
          <a class="itemname" href="/en/Ancient_Part">Ancient Civilization Parts</a>
          <span class="hover_text_rarity2">Rare</span>
        </div>
      </div>
      <div class="card-body">
        <div>Relic of a lost civilization.</div>
        <div class="text-muted"><i class="fa-solid fa-sack-xmark"></i> Not available</div>
      </div>
    </div>
  </div>
</div>
</body></html>
"""

DROPPED_BY_TABLE = """
<table class="table mb-0">
<thead><tr><th>Pal</th><th>Qty</th><th>Probability</th></tr></thead>
<tbody>
<tr><td><a class="itemname" href="/en/Anubis"><img src="/image/T_Anubis_icon.webp" alt="Anubis"></a></td><td>1-2</td><td>50%</td></tr>
<tr><td><a class="itemname" href="/en/Penking">Penking</a></td><td>1</td><td>10%</td></tr>
</tbody>
</table>
"""

DROPPED_BY_TABLE_UNCLOSED = """
<table class="table mb-0">
<thead><tr><th>Pal</th><th>Qty</th><th>Probability</th></tr></thead>
<tbody>
<tr><td><a class="itemname" href="/en/Anubis"><img src="/image/T_Anubis_icon.webp" alt="Anubis"></a><td>1-2<td>50%
<tr><td><a class="itemname" href="/en/Penking">Penking</a><td>1<td>10%
</table>
"""

TREANT_ATTR = (
    "{&quot;link&quot;:{&quot;href&quot;:&quot;/en/Pal_Metal_Ingot&quot;},"
    "&quot;image&quot;:&quot;/image/T_itemicon_PalMetalIngot.webp&quot;,"
    "&quot;text&quot;:{&quot;name&quot;:&quot;1&quot;},"
    "&quot;children&quot;:[{&quot;link&quot;:{&quot;href&quot;:&quot;/en/Ore&quot;},"
    "&quot;text&quot;:{&quot;name&quot;:&quot;2&quot;}}]}"
)

DETAIL_TEMPLATE = """
<html><head><title>Pal Metal Ingot - Palworld Database</title></head><body>
<div class="container">
<h2>Pal Metal Ingot</h2>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Stats</h5>
  <div class="d-flex justify-content-between p-2"><div>Weight</div><div>2</div></div>
  <div class="d-flex justify-content-between p-2"><div>Gold</div><div>120</div></div>
</div></div>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Others</h5>
  <div class="d-flex justify-content-between p-2"><div>Category</div><div><a href="/en/Material">Material</a></div></div>
</div></div>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Production</h5>
  <div class="row row-cols-1 row-cols-lg-2 g-2">
    <div class="col"><a class="itemname" href="/en/Primitive_Furnace"><img src="/image/T_icon_furnace.webp" alt="Primitive Furnace"></a></div>
    <div class="col"><a class="itemname" href="/en/Improved_Furnace">Improved Furnace</a></div>
  </div>
  <table class="table mb-0">
  <thead><tr><th>Materials</th><th>Product</th></tr></thead>
  <tbody>
  <tr><td><span><a class="itemname" href="/en/Ore"><img src="/image/T_itemicon_Ore.webp">Ore</a><small class="itemQuantity">2</small></span><span><img src="/image/T_icon_status_05.webp"><small class="itemQuantity">50</small></span></td><td><a class="itemname" href="/en/Pal_Metal_Ingot">Pal Metal Ingot</a><small class="itemQuantity">1</small></td></tr>
  </tbody>
  </table>
</div></div>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Dropped By</h5>
  {dropped_by}
</div></div>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Treasure Box</h5>
  <table class="table mb-0"><tbody>
  <tr><td><a class="itemname" href="/en/Pal_Metal_Ingot">Pal Metal Ingot</a><small class="itemQuantity">3-5</small></td><td>Wooden Chest</td></tr>
  </tbody></table>
</div></div>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Wandering Merchant</h5>
  <table class="table mb-0"><tbody>
  <tr><td><a class="itemname" href="/en/Pal_Metal_Ingot">Pal Metal Ingot</a></td><td>Wandering Merchant</td></tr>
  </tbody></table>
</div></div>

<div class="card mt-3"><div class="card-body">
  <h5 class="card-title">Soul Upgrade</h5>
  <table class="table mb-0"><tbody>
  <tr><td><a class="itemname" href="/en/Giant_Pal_Soul">Giant Pal Soul</a> x3</td><td>Rank 2</td></tr>
  </tbody></table>
</div></div>

<div id="tree" data-treant="{treant}"></div>
</div>
</body></html>
"""


def build_detail_html(dropped_by: str = DROPPED_BY_TABLE) -> str:
    return DETAIL_TEMPLATE.replace("{dropped_by}", dropped_by).replace("{treant}", TREANT_ATTR)


DETAIL_HTML = build_detail_html()
DETAIL_HTML_UNCLOSED = build_detail_html(DROPPED_BY_TABLE_UNCLOSED)


class FakeFetcher:
    """Scripted `fetch_html` stand-in recording every requested URL."""

    def __init__(self, pages: Dict[str, str]):
        self.pages = dict(pages)
        self.calls: List[str] = []
        self.fail = False

    async def fetch_html(self, url: str) -> str:
        self.calls.append(url)
        if self.fail:
            raise httpx.ConnectError("connection refused")
        if url not in self.pages:
            request = httpx.Request("GET", url)
            response = httpx.Response(404, request=request)
            raise httpx.HTTPStatusError("404 Not Found", request=request, response=response)
        return self.pages[url]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, millis: float):
        self.now += millis


@pytest.fixture
def clock():
    return FakeClock(1_000_000.0)


@pytest.fixture
def cache(clock):
    return ResourceCache(clock=clock)


@pytest.fixture
def fake_fetcher():
    from creaturerealm.config import config

    return FakeFetcher({
        config.index_url("material"): INDEX_HTML,
        config.detail_url("Pal_Metal_Ingot"): DETAIL_HTML,
    })


@pytest.fixture
def scraper(fake_fetcher, cache):
    return CatalogScraper(fetcher=fake_fetcher, cache=cache)
