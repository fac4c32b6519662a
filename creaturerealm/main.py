"""
CreatureRealm Catalog Service - FastAPI Application
Exposes parsed catalog records to UI collaborators as JSON.
"""
from typing import List

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from creaturerealm import __version__
from creaturerealm.config import config
from creaturerealm.layers.catalog import CatalogScraper
from creaturerealm.models.records import DetailRecord, IndexRecord
from creaturerealm.utils.logger import get_logger, set_trace_id


# Initialize FastAPI app
app = FastAPI(
    title="CreatureRealm Catalog Service",
    description="Resilient extraction of catalog records from third-party wiki pages",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize layers
scraper = CatalogScraper()

logger = get_logger("main")


def _upstream_error(e: httpx.HTTPError) -> HTTPException:
    return HTTPException(status_code=502, detail=f"Upstream fetch failed: {str(e)}")


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/api/categories")
async def list_categories():
    """List the catalog categories that can be scraped."""
    return {"categories": config.known_categories()}


@app.get("/api/catalog/{category}", response_model=List[IndexRecord])
async def get_catalog_index(
    category: str,
    force: bool = Query(False, description="Bypass the cache freshness check"),
):
    """Return every index record of a category."""
    trace_id = set_trace_id()
    logger.info("index_request", category=category, force=force, trace_id=trace_id)

    try:
        return await scraper.fetch_index(category, force=force)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")
    except httpx.HTTPError as e:
        logger.error("index_request_failed", category=category, error=str(e))
        raise _upstream_error(e)


@app.get("/api/catalog/{category}/{item_id:path}", response_model=DetailRecord)
async def get_catalog_detail(
    category: str,
    item_id: str,
    force: bool = Query(False, description="Bypass the cache freshness check"),
):
    """
    Return one detail record.

    `item_id` is a slug, a detail href, or a `slug::rarity::tier::icon`
    variant key.
    """
    trace_id = set_trace_id()
    logger.info("detail_request", category=category, item_id=item_id, force=force, trace_id=trace_id)

    try:
        return await scraper.fetch_detail(item_id, category=category, force=force)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")
    except httpx.HTTPError as e:
        logger.error("detail_request_failed", category=category, item_id=item_id, error=str(e))
        raise _upstream_error(e)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
